"""Creates the catalog tables with demo data and an admin account.

Usage:
    python scripts/seed_db.py [--admin-password SECRET]
"""
import argparse
import logging
import os
import sys
from datetime import datetime

import pandas as pd

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from storefront.config import settings  # noqa: E402
from storefront.core.security import hash_password  # noqa: E402
from storefront.database import db  # noqa: E402
from storefront.models.user import User  # noqa: E402

logger = logging.getLogger("seed_db")

CATEGORIES = [
    {"id": 1, "name": "Notebooks", "slug": "notebooks", "icon": "laptop"},
    {"id": 2, "name": "Desktops", "slug": "desktops", "icon": "desktop"},
    {"id": 3, "name": "Periféricos", "slug": "perifericos", "icon": "keyboard"},
    {"id": 4, "name": "Componentes", "slug": "componentes", "icon": "microchip"},
    {"id": 5, "name": "Redes", "slug": "redes", "icon": "network-wired"},
    {"id": 6, "name": "Acessórios", "slug": "acessorios", "icon": "headset"},
]

PRODUCTS = [
    {
        "id": 1, "name": "Notebook Pro X", "slug": "notebook-pro-x",
        "description": "Intel Core i7, 16GB de RAM e SSD de 512GB para quem precisa de desempenho.",
        "price": "4999.00", "old_price": "5899.00", "discount_percentage": 15,
        "image_url": "https://images.unsplash.com/photo-1603302576837-37561b2e2302",
        "category_id": 1, "stock": 25, "featured": True, "sku": "NB-PRO-X-2023",
        "specs": "Processador: Intel Core i7-11800H\nMemória RAM: 16GB DDR4\nArmazenamento: SSD 512GB NVMe",
        "rating": "4.5", "review_count": 120, "weight_kg": "1.8",
    },
    {
        "id": 2, "name": "Mouse Gamer RGB", "slug": "mouse-gamer-rgb",
        "description": "Sensor óptico de 12000 DPI, 8 botões programáveis e iluminação RGB.",
        "price": "159.90", "old_price": "", "discount_percentage": "",
        "image_url": "https://images.unsplash.com/photo-1615663245857-ac93bb7c39e7",
        "category_id": 3, "stock": 50, "featured": True, "sku": "MS-GMR-RGB-01",
        "specs": "Sensor: Óptico\nDPI: até 12000\nConexão: USB",
        "rating": "5.0", "review_count": 85, "weight_kg": "0.2",
    },
    {
        "id": 3, "name": "Teclado Mecânico", "slug": "teclado-mecanico",
        "description": "Switches Blue, iluminação RGB e layout ABNT2.",
        "price": "299.90", "old_price": "379.90", "discount_percentage": 20,
        "image_url": "https://images.unsplash.com/photo-1605464315542-bda3e2f4e605",
        "category_id": 3, "stock": 30, "featured": True, "sku": "KB-MEC-RGB-02",
        "specs": "Switches: Blue\nLayout: ABNT2\nIluminação: RGB",
        "rating": "4.0", "review_count": 42, "weight_kg": "1.1",
    },
    {
        "id": 4, "name": "Monitor Ultra HD", "slug": "monitor-ultra-hd",
        "description": "32 polegadas, 4K, 144Hz e HDR.",
        "price": "2599.00", "old_price": "", "discount_percentage": "",
        "image_url": "https://images.unsplash.com/photo-1600861194942-f883de0dfe96",
        "category_id": 3, "stock": 15, "featured": True, "sku": "MN-4K-32-HDR",
        "specs": "Tamanho: 32\"\nResolução: 3840 x 2160\nTaxa de atualização: 144Hz",
        "rating": "3.5", "review_count": 28, "weight_kg": "7.5",
    },
]


def seed_table(table, rows):
    path = db._file_path(table)
    if path.exists():
        logger.info("%s already exists, skipping", path)
        return
    now = datetime.utcnow().isoformat(sep=" ")
    df = pd.DataFrame([dict(r, created_at=now) if table == "products" else r for r in rows])
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logger.info("Created %s with %d rows", path, len(df))


def seed_admin(username, email, password):
    if db.get_record("users", "username", username):
        logger.info("Admin %s already exists, skipping", username)
        return
    admin = User(username=username, email=email, password_hash=hash_password(password), role="admin",
                 full_name="Administrador", created_at=datetime.utcnow())
    data = admin.to_dict()
    data.pop("id")
    db.create_record("users", data, id_field="id")
    logger.info("Created admin account %s", username)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-username", default="admin")
    parser.add_argument("--admin-email", default="admin@techstore.com.br")
    parser.add_argument("--admin-password", default=os.getenv("ADMIN_PASSWORD", "admin123"))
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    os.makedirs(settings.image_dir, exist_ok=True)
    seed_table("categories", CATEGORIES)
    seed_table("products", PRODUCTS)
    seed_admin(args.admin_username, args.admin_email, args.admin_password)


if __name__ == "__main__":
    main()
