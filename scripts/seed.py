# scripts/seed.py
# Создаёт таблицы, купоны по умолчанию, демо-товары и администратора (для разработки).
import logging
import os

from storefront.core.config import settings
from storefront.core.security import get_password_hash
from storefront.db.base import Base, import_models
from storefront.db.session import SessionLocal, engine
from storefront.models.product import Product, ProductVariant, slugify
from storefront.models.user import RoleEnum, User
from storefront.services.coupons import seed_default_coupons

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("seed")

DEMO_PRODUCTS = [
    {
        "name": "Classic Kibanda Hoodie",
        "brand": "Kibanda",
        "price": 2500,
        "description": "Heavyweight fleece with bold embroidery.",
        "variants": [("KB-HD-BLK-M", "M", "Black", "#000000", 20), ("KB-HD-BLK-L", "L", "Black", "#000000", 15)],
    },
    {
        "name": "Signature Tee",
        "brand": "Kibanda",
        "price": 1000,
        "description": "Premium cotton tee with oversized fit.",
        "variants": [("KB-TS-WHT-S", "S", "White", "#FFFFFF", 30), ("KB-TS-WHT-M", "M", "White", "#FFFFFF", 25)],
    },
    {
        "name": "Street Runner Jeans",
        "brand": "Nairobi Denim",
        "price": 3200,
        "description": "Slim fit stretch denim.",
        "variants": [("ND-JN-BLU-32", "32", "Blue", "#1F3A93", 10), ("ND-JN-BLU-34", "34", "Blue", "#1F3A93", 8)],
    },
]


def main():
    import_models()
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_default_coupons(db)

        for data in DEMO_PRODUCTS:
            slug = slugify(data["name"])
            if db.query(Product).filter(Product.slug == slug).first():
                continue
            db.add(Product(
                name=data["name"],
                slug=slug,
                brand=data["brand"],
                price=data["price"],
                description=data["description"],
                images=[],
                variants=[
                    ProductVariant(sku=sku, size=size, color_name=color, color_hex=hex_code, stock=stock)
                    for sku, size, color, hex_code, stock in data["variants"]
                ],
            ))
            logger.info(f"📦 Seeded product {data['name']}")

        admin_email = os.getenv("ADMIN_EMAIL", "admin@kibanda.local")
        if not db.query(User).filter(User.email == admin_email).first():
            db.add(User(
                email=admin_email,
                hashed_password=get_password_hash(os.getenv("ADMIN_PASSWORD", "admin123")),
                full_name="Store Admin",
                role=RoleEnum.admin,
            ))
            logger.info(f"👤 Seeded admin {admin_email}")
        db.commit()


if __name__ == "__main__":
    main()
