from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from . import Base
from .user import user_role_enum

difficulty_enum = Enum("easy", "medium", "hard", name="recipe_difficulty")


class RecipeCategory(Base):
    __tablename__ = "recipe_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    category_id = Column(Integer, ForeignKey("recipe_categories.id"), nullable=False, index=True)
    difficulty = Column(difficulty_enum, nullable=False)
    prep_time = Column(Integer, nullable=False, default=0)
    cook_time = Column(Integer, nullable=False, default=0)
    servings = Column(Integer, nullable=False, default=1)
    image_url = Column(String, nullable=True)
    min_role = Column(user_role_enum, nullable=False, default="staff")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    category = relationship("RecipeCategory")
    creator = relationship("User")
    ingredients = relationship(
        "RecipeIngredient",
        order_by="RecipeIngredient.position",
        cascade="all, delete-orphan",
    )
    steps = relationship(
        "RecipeStep",
        order_by="RecipeStep.step_number",
        cascade="all, delete-orphan",
    )

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def creator_name(self) -> str | None:
        return self.creator.full_name if self.creator else None


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String(120), nullable=False)
    quantity = Column(String(40), nullable=True)
    unit = Column(String(40), nullable=True)
    notes = Column(Text, nullable=True)


class RecipeStep(Base):
    __tablename__ = "recipe_steps"

    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)
    image_url = Column(String, nullable=True)
