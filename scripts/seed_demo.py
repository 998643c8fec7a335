"""Seed demo users, recipes and shifts into the configured database.

Safe to run repeatedly: existing rows are left alone.
"""

from datetime import date, time, timedelta

from brigade.db import SessionLocal
from brigade.models import Recipe, RecipeCategory, RecipeIngredient, RecipeStep, ShiftAssignment, User
from brigade.services.sessions import get_password_hash

DEFAULT_PASSWORD = "demo1234"
DEMO_USERS = [
    ("superadmin", "Demo Super Admin", "super_admin"),
    ("admin", "Demo Admin", "admin"),
    ("chef", "Demo Chef", "chef"),
    ("staff", "Demo Staff", "staff"),
]
CATEGORIES = [
    ("Appetizers", "Starters and small plates"),
    ("Main Course", "Plated mains"),
    ("Desserts", "Sweet courses"),
]
SHIFT_HOURS = {
    "morning": (time(8, 0), time(12, 0)),
    "afternoon": (time(12, 0), time(17, 0)),
    "evening": (time(17, 0), time(22, 0)),
}


def ensure_user(session, username: str, full_name: str, role: str) -> User:
    user = session.query(User).filter(User.username == username).one_or_none()
    if user:
        return user
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=full_name,
        password_hash=get_password_hash(DEFAULT_PASSWORD),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.flush()
    return user


def ensure_category(session, name: str, description: str) -> RecipeCategory:
    category = session.query(RecipeCategory).filter(RecipeCategory.name == name).one_or_none()
    if category is None:
        category = RecipeCategory(name=name, description=description)
        session.add(category)
        session.flush()
    return category


def ensure_recipe(session, name: str, category: RecipeCategory, min_role: str, author: User) -> None:
    if session.query(Recipe.id).filter(Recipe.name == name).first():
        return
    recipe = Recipe(
        name=name,
        description=f"{name} (visible to {min_role} and above)",
        category_id=category.id,
        difficulty="medium",
        prep_time=15,
        cook_time=30,
        servings=4,
        min_role=min_role,
        created_by=author.id,
        is_active=True,
    )
    recipe.ingredients = [
        RecipeIngredient(position=1, name="Salt", quantity="1", unit="tsp"),
        RecipeIngredient(position=2, name="Olive oil", quantity="2", unit="tbsp"),
    ]
    recipe.steps = [
        RecipeStep(step_number=1, instruction="Prepare the mise en place."),
        RecipeStep(step_number=2, instruction="Cook and plate."),
    ]
    session.add(recipe)


def ensure_shift(session, user: User, shift_date: date, shift_type: str, creator: User) -> None:
    exists = (
        session.query(ShiftAssignment.id)
        .filter(
            ShiftAssignment.user_id == user.id,
            ShiftAssignment.shift_date == shift_date,
            ShiftAssignment.shift_type == shift_type,
        )
        .first()
    )
    if exists:
        return
    start, end = SHIFT_HOURS[shift_type]
    session.add(
        ShiftAssignment(
            user_id=user.id,
            shift_date=shift_date,
            shift_type=shift_type,
            start_time=start,
            end_time=end,
            created_by=creator.id,
        )
    )


def main() -> None:
    session = SessionLocal()
    try:
        users = {role: ensure_user(session, username, name, role) for username, name, role in DEMO_USERS}
        categories = [ensure_category(session, name, description) for name, description in CATEGORIES]
        ensure_recipe(session, "House Salad", categories[0], "staff", users["chef"])
        ensure_recipe(session, "Braised Short Rib", categories[1], "chef", users["chef"])
        ensure_recipe(session, "Tasting Menu Souffle", categories[2], "admin", users["admin"])

        today = date.today()
        for offset, shift_type in enumerate(SHIFT_HOURS):
            ensure_shift(session, users["staff"], today + timedelta(days=offset), shift_type, users["admin"])
            ensure_shift(session, users["chef"], today + timedelta(days=offset), "morning", users["admin"])
        session.commit()
        print("Demo data ready:")
        for username, _, role in DEMO_USERS:
            print(f"  {role}: {username} / {DEFAULT_PASSWORD}")
    finally:
        session.close()


if __name__ == "__main__":
    main()
