"""
SQLAlchemy models for the household data store.

Every domain row hangs off a household, directly (recipes, planner meals, grocery lists) or
through its parent (recipe ingredients, grocery items).  Primary keys are string UUIDs so the
same schema runs on SQLite and Postgres.
"""

from datetime import datetime
from typing import (
    Any,
    List,
    Optional,
)

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)

from mealbrain.common import (
    new_id,
    utcnow,
)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


def _uuid_pk() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=new_id)


def _created_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Household(Base):
    """Tenancy boundary."""

    __tablename__ = "households"

    id: Mapped[str] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = _created_at()


class User(Base):
    """Application user; belongs to at most one household."""

    __tablename__ = "users"

    id: Mapped[str] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(200))
    household_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("households.id", ondelete="SET NULL"), index=True
    )
    created_at: Mapped[datetime] = _created_at()


class AuthSession(Base):
    """Opaque bearer token issued to a signed-in user."""

    __tablename__ = "auth_sessions"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = _created_at()
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Ingredient(Base):
    """Canonical ingredient shared across households (lower-cased name)."""

    __tablename__ = "ingredients"

    id: Mapped[str] = _uuid_pk()
    canonical_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)


class Recipe(Base):
    """A household recipe."""

    __tablename__ = "recipes"

    id: Mapped[str] = _uuid_pk()
    household_id: Mapped[str] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    instructions: Mapped[Optional[str]] = mapped_column(Text)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000))
    source: Mapped[Optional[str]] = mapped_column(String(500))
    serving_size: Mapped[Optional[int]] = mapped_column(Integer)
    prep_time: Mapped[Optional[int]] = mapped_column(Integer)
    cook_time: Mapped[Optional[int]] = mapped_column(Integer)
    meal_type: Mapped[Optional[str]] = mapped_column(String(32))
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    ingredients: Mapped[List["RecipeIngredient"]] = relationship(
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
    )


class RecipeIngredient(Base):
    """One ingredient line of a recipe."""

    __tablename__ = "recipe_ingredients"

    id: Mapped[str] = _uuid_pk()
    recipe_id: Mapped[str] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[Optional[str]] = mapped_column(ForeignKey("ingredients.id"))
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    prep_state: Mapped[Optional[str]] = mapped_column(String(200))
    optional: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    recipe: Mapped[Recipe] = relationship(back_populates="ingredients")


class PlannerMeal(Base):
    """A recipe or custom item scheduled on a date for a meal slot."""

    __tablename__ = "planner_meals"

    id: Mapped[str] = _uuid_pk()
    household_id: Mapped[str] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recipe_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("recipes.id", ondelete="SET NULL"), index=True
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    meal_type: Mapped[str] = mapped_column(String(32), nullable=False)
    serving_size: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    custom_title: Mapped[Optional[str]] = mapped_column(String(200))
    custom_item_type: Mapped[Optional[str]] = mapped_column(String(32))
    created_at: Mapped[datetime] = _created_at()

    recipe: Mapped[Optional[Recipe]] = relationship()


class GroceryList(Base):
    """A named grocery list; names are unique within a household."""

    __tablename__ = "grocery_lists"
    __table_args__ = (UniqueConstraint("household_id", "name", name="uq_grocery_list_name"),)

    id: Mapped[str] = _uuid_pk()
    household_id: Mapped[str] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = _created_at()

    items: Mapped[List["GroceryItem"]] = relationship(
        back_populates="grocery_list",
        cascade="all, delete-orphan",
        order_by="GroceryItem.created_at",
    )


class GroceryItem(Base):
    """One line on a grocery list."""

    __tablename__ = "grocery_items"

    id: Mapped[str] = _uuid_pk()
    grocery_list_id: Mapped[str] = mapped_column(
        ForeignKey("grocery_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[Optional[str]] = mapped_column(String(36))
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    checked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    source_recipe_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = _created_at()

    grocery_list: Mapped[GroceryList] = relationship(back_populates="items")


class UserPreferences(Base):
    """Preferences row; the household's first user holds the household-wide settings."""

    __tablename__ = "user_preferences"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    household_context: Mapped[Optional[str]] = mapped_column(Text)
    dietary_constraints: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    ai_style: Mapped[Optional[str]] = mapped_column(String(200))
    planning_preferences: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    ai_learning_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    shopping_categories: Mapped[Optional[List[str]]] = mapped_column(JSON)
    meal_courses: Mapped[Optional[List[dict[str, Any]]]] = mapped_column(JSON)
    default_grocery_list_id: Mapped[Optional[str]] = mapped_column(String(36))
    theme_color: Mapped[Optional[str]] = mapped_column(String(16))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
