from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .user import RoleName

Difficulty = Literal["easy", "medium", "hard"]

FIELD_DEFAULTS = {"min_role": "staff", "prep_time": 0, "cook_time": 0, "servings": 1}


class IngredientIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    quantity: Optional[str] = Field(None, max_length=40)
    unit: Optional[str] = Field(None, max_length=40)
    notes: Optional[str] = None

    @field_validator("quantity", mode="before")
    def quantity_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class StepIn(BaseModel):
    instruction: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    # Accepted for client convenience; numbering is always derived from list order.
    step_number: Optional[int] = None


class RecipeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category_id: int = Field(..., gt=0)
    difficulty: Difficulty
    prep_time: int = Field(0, ge=0)
    cook_time: int = Field(0, ge=0)
    servings: int = Field(1, ge=1)
    image_url: Optional[str] = None
    min_role: RoleName = "staff"
    ingredients: List[IngredientIn] = Field(default_factory=list)
    steps: List[StepIn] = Field(default_factory=list)

    @field_validator("name", "description")
    def strip_required(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned

    @field_validator("min_role", "prep_time", "cook_time", "servings", mode="before")
    def default_when_null(cls, value, info):
        if value is None:
            return FIELD_DEFAULTS[info.field_name]
        return value


class RecipeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    category_id: Optional[int] = Field(None, gt=0)
    difficulty: Optional[Difficulty] = None
    prep_time: Optional[int] = Field(None, ge=0)
    cook_time: Optional[int] = Field(None, ge=0)
    servings: Optional[int] = Field(None, ge=1)
    image_url: Optional[str] = None
    min_role: Optional[RoleName] = None
    ingredients: Optional[List[IngredientIn]] = None
    steps: Optional[List[StepIn]] = None

    @field_validator(
        "name", "description", "category_id", "difficulty", "prep_time", "cook_time", "servings", "min_role",
        mode="before",
    )
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class CategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class IngredientRead(BaseModel):
    id: int
    position: int
    name: str
    quantity: Optional[str] = None
    unit: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StepRead(BaseModel):
    id: int
    step_number: int
    instruction: str
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RecipeSummary(BaseModel):
    id: int
    name: str
    description: str
    category_id: int
    category_name: Optional[str] = None
    difficulty: str
    prep_time: int
    cook_time: int
    servings: int
    image_url: Optional[str] = None
    min_role: str
    created_by: Optional[int] = None
    creator_name: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RecipeDetail(RecipeSummary):
    ingredients: List[IngredientRead] = Field(default_factory=list)
    steps: List[StepRead] = Field(default_factory=list)
