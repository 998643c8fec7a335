from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..errors import NotFoundError, StorageError, ValidationError
from ..models import Recipe, RecipeCategory, RecipeIngredient, RecipeStep
from ..schemas.recipe import IngredientIn, RecipeCreate, RecipeSummary, RecipeUpdate, StepIn
from .access import Subject, can_mutate_recipe, can_view_recipe, ensure
from .roles import roles_at_or_below

logger = logging.getLogger(__name__)


def _visible_recipes(db: Session, subject: Subject):
    visible_roles = [role.value for role in roles_at_or_below(subject.role)]
    return db.query(Recipe).filter(Recipe.is_active.is_(True), Recipe.min_role.in_(visible_roles))


def list_recipes(
    db: Session,
    subject: Subject,
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Recipe], int]:
    query = _visible_recipes(db, subject)
    if category_id:
        query = query.filter(Recipe.category_id == category_id)
    term = (search or "").strip()
    if term:
        # Plain substring match; LIKE wildcards in the term are literal.
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        query = query.filter(
            or_(Recipe.name.ilike(pattern, escape="\\"), Recipe.description.ilike(pattern, escape="\\"))
        )

    total = query.count()
    items = (
        query.options(joinedload(Recipe.category), joinedload(Recipe.creator))
        .order_by(Recipe.created_at.desc(), Recipe.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def list_categories(db: Session) -> list[RecipeCategory]:
    return db.query(RecipeCategory).order_by(RecipeCategory.name.asc()).all()


def _load_recipe(db: Session, recipe_id: int) -> Optional[Recipe]:
    # Ingredients and steps stay lazy: they are only read once the caller has
    # been allowed to see the recipe.
    return (
        db.query(Recipe)
        .options(joinedload(Recipe.category), joinedload(Recipe.creator))
        .filter(Recipe.id == recipe_id)
        .one_or_none()
    )


def get_recipe_detail(db: Session, recipe_id: int, subject: Subject) -> Recipe:
    """Return a recipe with its ordered ingredients and steps.

    A recipe the subject may not see is reported exactly like a missing one,
    so callers cannot probe for restricted recipes.
    """
    recipe = _load_recipe(db, recipe_id)
    if not recipe or not can_view_recipe(subject, recipe):
        raise NotFoundError("Recipe not found")
    return recipe


def _build_ingredients(items: Iterable[IngredientIn]) -> list[RecipeIngredient]:
    return [
        RecipeIngredient(
            position=index + 1,
            name=item.name.strip(),
            quantity=item.quantity,
            unit=item.unit,
            notes=item.notes,
        )
        for index, item in enumerate(items)
    ]


def _build_steps(items: Iterable[StepIn]) -> list[RecipeStep]:
    return [
        RecipeStep(step_number=index + 1, instruction=item.instruction.strip(), image_url=item.image_url)
        for index, item in enumerate(items)
    ]


def _ensure_category(db: Session, category_id: int) -> None:
    if not db.query(RecipeCategory.id).filter(RecipeCategory.id == category_id).one_or_none():
        raise ValidationError("category_id: category does not exist")


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Recipe %s failed", action)
        raise StorageError() from exc


def create_recipe(db: Session, payload: RecipeCreate, creator: Subject) -> Recipe:
    ensure(can_mutate_recipe(creator, "create"))
    _ensure_category(db, payload.category_id)

    recipe = Recipe(
        name=payload.name,
        description=payload.description,
        category_id=payload.category_id,
        difficulty=payload.difficulty,
        prep_time=payload.prep_time,
        cook_time=payload.cook_time,
        servings=payload.servings,
        image_url=payload.image_url,
        min_role=payload.min_role,
        created_by=creator.id,
        is_active=True,
    )
    recipe.ingredients = _build_ingredients(payload.ingredients)
    recipe.steps = _build_steps(payload.steps)
    db.add(recipe)
    _commit(db, "creation")
    logger.info("User %s created recipe %s", creator.id, recipe.id)
    return _load_recipe(db, recipe.id)


def update_recipe(
    db: Session,
    recipe_id: int,
    payload: RecipeUpdate,
    subject: Subject,
) -> tuple[RecipeSummary, Recipe]:
    ensure(can_mutate_recipe(subject, "update"))
    recipe = get_recipe_detail(db, recipe_id, subject)
    changes = payload.model_dump(exclude_unset=True, exclude={"ingredients", "steps"})
    replace_ingredients = payload.ingredients is not None
    replace_steps = payload.steps is not None
    if not changes and not replace_ingredients and not replace_steps:
        raise ValidationError("No update data provided")
    if "category_id" in changes:
        _ensure_category(db, changes["category_id"])

    previous = RecipeSummary.model_validate(recipe)
    for field, value in changes.items():
        setattr(recipe, field, value)
    if replace_ingredients:
        recipe.ingredients = _build_ingredients(payload.ingredients)
    if replace_steps:
        recipe.steps = _build_steps(payload.steps)
    _commit(db, "update")
    return previous, _load_recipe(db, recipe_id)


def deactivate_recipe(db: Session, recipe_id: int, subject: Subject) -> Recipe:
    ensure(can_mutate_recipe(subject, "delete"))
    recipe = get_recipe_detail(db, recipe_id, subject)
    recipe.is_active = False
    _commit(db, "deactivation")
    return recipe
