# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cafepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin/manager/cashier users.
# - python -m flask system seed-demo
#   Load the demo café menu (ingredients, products with recipes and stock).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username sara --password "Password123!" --role cashier
#   Create a user (prompts if options are omitted).

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import Ingredient, Product, ProductIngredient, User, ROLES
from .money import to_cents
from .services.auth_service import create_user, list_users


DEFAULT_PASSWORD = "Password123!"

# (name, stock, unit)
DEMO_INGREDIENTS = [
    ("حبوب قهوة", 5000, "جرام"),
    ("حليب", 10000, "مل"),
    ("سكر", 2000, "جرام"),
    ("دقيق", 5000, "جرام"),
    ("جبنة", 3000, "جرام"),
    ("صلصة طماطم", 2000, "مل"),
    ("قطعة لحم برجر", 50, "قطعة"),
    ("خبز برجر", 50, "قطعة"),
    ("خس", 1000, "جرام"),
    ("بطاطس", 10000, "جرام"),
]

# (name, price, category, stock, [(ingredient, quantity_used, unit)])
DEMO_PRODUCTS = [
    ("قهوة اسبريسو", "20.00", "قهوة", 100, [("حبوب قهوة", 20, "جرام")]),
    ("لاتيه", "35.00", "قهوة", 100, [("حبوب قهوة", 20, "جرام"), ("حليب", 200, "مل")]),
    ("كابوتشينو", "35.00", "قهوة", 100, [("حبوب قهوة", 20, "جرام"), ("حليب", 150, "مل")]),
    ("كرواسون", "15.00", "معجنات", 40, [("دقيق", 100, "جرام")]),
    ("بيتزا مارجريتا", "50.00", "وجبات", 30, [
        ("دقيق", 200, "جرام"), ("جبنة", 150, "جرام"), ("صلصة طماطم", 100, "مل"),
    ]),
    ("برجر لحم", "60.00", "وجبات", 30, [
        ("قطعة لحم برجر", 1, "قطعة"), ("خبز برجر", 1, "قطعة"), ("خس", 10, "جرام"),
    ]),
    ("بطاطس مقلية", "25.00", "مقليات", 50, [("بطاطس", 250, "جرام")]),
    ("عصير برتقال", "30.00", "مشروبات", 50, []),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables (if missing) and the default users.

    Users: admin, manager, cashier. All passwords default to "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing CafePOS...")
    db.create_all()

    rounds = current_app.config["BCRYPT_ROUNDS"]
    for role in ROLES:
        if db.session.query(User).filter_by(username=role).first():
            click.echo(f"WARN  User '{role}' already exists, skipping...")
            continue
        try:
            create_user(username=role, password=DEFAULT_PASSWORD, role=role, bcrypt_rounds=rounds)
            click.echo(f"PASS Created user: {role} with role '{role}'")
        except PosError as e:
            click.echo(f"FAIL Failed to create user '{role}': {e}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for role in ROLES:
        click.echo(f"   {role:<8} / {DEFAULT_PASSWORD}")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Load the demo menu. Skips whatever already exists."""
    ingredients = {i.name: i for i in db.session.query(Ingredient).all()}
    added_ingredients = 0
    for name, stock, unit in DEMO_INGREDIENTS:
        if name in ingredients:
            continue
        ingredients[name] = Ingredient(name=name, stock=stock, unit=unit)
        db.session.add(ingredients[name])
        added_ingredients += 1
    db.session.flush()

    added_products = 0
    for name, price, category, stock, recipe in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(name=name).first():
            continue
        product = Product(
            name=name,
            price_cents=to_cents(price),
            category=category,
            stock=stock,
            ingredients=[
                ProductIngredient(ingredient_id=ingredients[ing].id, quantity_used=qty, unit=unit)
                for ing, qty, unit in recipe
            ],
        )
        db.session.add(product)
        added_products += 1

    db.session.commit()
    click.echo(f"PASS Added {added_ingredients} ingredients, {added_products} products")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            username=username,
            password=password,
            role=role,
            bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
        )
    except PosError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with roles and active status."""
    users = list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Username':<25} {'Role':<10} {'Active'}")
    click.echo("="*60)
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<25} {user.role:<10} {'Yes' if user.is_active else 'No'}")
    click.echo("="*60 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
