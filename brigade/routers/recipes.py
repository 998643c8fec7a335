from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies import PageParams, get_current_subject
from ..responses import success
from ..schemas.common import build_pagination
from ..schemas.recipe import CategoryRead, RecipeCreate, RecipeDetail, RecipeSummary, RecipeUpdate
from ..services import recipes as recipe_service
from ..services.access import Subject
from ..services.audit import record_activity

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


@router.get("")
def list_recipes(
    category_id: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    paging: PageParams = Depends(),
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    items, total = recipe_service.list_recipes(db, subject, category_id, search, paging.page, paging.limit)
    return success(
        {
            "recipes": [RecipeSummary.model_validate(recipe) for recipe in items],
            "pagination": build_pagination(paging.page, paging.limit, total),
        }
    )


@router.get("/categories")
def list_categories(subject: Subject = Depends(get_current_subject), db: Session = Depends(get_db)):
    categories = recipe_service.list_categories(db)
    return success({"categories": [CategoryRead.model_validate(category) for category in categories]})


@router.post("", status_code=201)
def create_recipe(
    payload: RecipeCreate,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    recipe = recipe_service.create_recipe(db, payload, subject)
    detail = RecipeDetail.model_validate(recipe)
    record_activity(db, subject.id, "create_recipe", "recipes", detail.id, after=payload, request=request)
    return success({"message": "Recipe created", "recipe_id": detail.id, "recipe": detail}, status_code=201)


@router.get("/{recipe_id}")
def get_recipe(recipe_id: int, subject: Subject = Depends(get_current_subject), db: Session = Depends(get_db)):
    recipe = recipe_service.get_recipe_detail(db, recipe_id, subject)
    return success({"recipe": RecipeDetail.model_validate(recipe)})


@router.put("/{recipe_id}")
def update_recipe(
    recipe_id: int,
    payload: RecipeUpdate,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    previous, recipe = recipe_service.update_recipe(db, recipe_id, payload, subject)
    detail = RecipeDetail.model_validate(recipe)
    record_activity(db, subject.id, "update_recipe", "recipes", recipe_id, before=previous, after=payload, request=request)
    return success({"message": "Recipe updated", "recipe": detail})


@router.delete("/{recipe_id}")
def delete_recipe(
    recipe_id: int,
    request: Request,
    subject: Subject = Depends(get_current_subject),
    db: Session = Depends(get_db),
):
    recipe = recipe_service.deactivate_recipe(db, recipe_id, subject)
    snapshot = RecipeSummary.model_validate(recipe)
    record_activity(db, subject.id, "deactivate_recipe", "recipes", recipe_id, before=snapshot, request=request)
    return success({"message": "Recipe deleted"})
