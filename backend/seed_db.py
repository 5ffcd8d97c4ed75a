import argparse
import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import Base, SessionStoreBase, engine, session_engine, SessionLocal, init_db
from models.users import User
from models.product import Product
from utils.hashing import get_password_hash

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@gmail.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

IMAGE_A = "https://placehold.co/400x400/DA291C/FFD700/png"
IMAGE_B = "https://placehold.co/400x400/FFD700/DA291C/png"

# Sample catalog: (name, price, description, category, pieces, stock)
PRODUCTS = [
    ("Batman Minifigure", 499.99, "Classic Batman minifigure with cape and utility belt", "Minifigure", 1, 25),
    ("Astronaut Minifigure", 399.99, "Space explorer minifigure with oxygen tank and helmet", "Minifigure", 1, 15),
    ("Pirate Captain Minifigure", 449.99, "Pirate captain with eye patch, hat and sword accessories", "Minifigure", 1, 10),
    ("Wizard Minifigure", 599.99, "Magical wizard with staff, hat and spellbook", "Minifigure", 1, 12),
    ("Robot Minifigure", 424.99, "Futuristic robot with articulated limbs and light-up eyes", "Minifigure", 1, 20),
    ("City Police Station", 4499.99, "Complete police station with jail cells, 5 minifigures and vehicles", "Set", 743, 8),
    ("Spaceship Explorer", 6499.99, "Intergalactic spaceship with opening cockpit and retractable landing gear", "Set", 1254, 5),
    ("Medieval Castle", 7499.99, "Detailed castle with drawbridge, towers, and knights minifigures", "Set", 4514, 3),
    ("Treehouse Retreat", 9999.99, "Detailed treehouse with three cabins, working elevator and botanical elements", "Set", 3036, 4),
    ("Vintage Car", 3999.99, "Classic vintage car model with opening doors, trunk and detailed engine", "Set", 1471, 9),
    ("2x4 Blue Brick", 49.99, "Standard 2x4 blue building brick", "Piece", 1, 250),
    ("Transparent Round 1x1", 29.99, "Small transparent round piece, perfect for lights or decorations", "Piece", 1, 300),
    ("Curved Red Slope 2x2", 39.99, "Curved red roof piece for architectural designs", "Piece", 1, 180),
    ("Green Base Plate 32x32", 399.99, "Large green base plate for building landscapes", "Piece", 1, 40),
]


def seed_admin(session) -> User:
    """Creates the admin account unless one already exists."""
    admin = session.query(User).filter(User.role == "admin").first()
    if admin:
        print("Admin user already exists")
        return admin

    admin = User(
        username="admin",
        email=ADMIN_EMAIL,
        password_hash=get_password_hash(ADMIN_PASSWORD),
        role="admin",
    )
    session.add(admin)
    session.commit()
    print(f"Admin user created: {ADMIN_EMAIL}")
    return admin


def seed_products(session) -> int:
    if session.query(Product).count() > 0:
        print("Products already seeded")
        return 0

    for name, price, description, category, pieces, stock in PRODUCTS:
        session.add(Product(
            name=name,
            price=price,
            description=description,
            category=category,
            pieces=pieces,
            stock=stock,
            image_urls=[IMAGE_A, IMAGE_B],
        ))
    session.commit()
    print(f"Inserted {len(PRODUCTS)} products")
    return len(PRODUCTS)


def reset_database():
    """Drops and recreates every table of both stores."""
    init_db()
    Base.metadata.drop_all(bind=engine)
    SessionStoreBase.metadata.drop_all(bind=session_engine)
    init_db()
    print("Database rebuilt from scratch")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed the Brick Shop database")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args(argv)

    if args.reset:
        reset_database()
    else:
        init_db()

    session = SessionLocal()
    try:
        seed_admin(session)
        seed_products(session)
    finally:
        session.close()


if __name__ == "__main__":
    main()
