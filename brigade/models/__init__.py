from sqlalchemy.orm import declarative_base

Base = declarative_base()

from .activity_log import ActivityLog  # noqa: E402,F401
from .recipe import Recipe, RecipeCategory, RecipeIngredient, RecipeStep  # noqa: E402,F401
from .shift import ShiftAssignment  # noqa: E402,F401
from .user import User  # noqa: E402,F401
