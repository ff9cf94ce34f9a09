"""Bootstrap data for a fresh deployment.

Every step is skipped when matching data already exists, so running the seed
twice leaves the database unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

from app.store import InMemoryStore

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@dashboardavocado.com"
AGENT_EMAIL = "agent@dashboardavocado.com"
SUPPLIER_EMAIL = "sales@kigali-agro-inputs.rw"

SAMPLE_SUPPLIER: dict[str, Any] = {
    "name": "Kigali Agro Inputs",
    "category": "input_distributor",
    "contact_person": "Jean Mugisha",
    "email": SUPPLIER_EMAIL,
    "phone": "+250788000111",
    "address": {
        "street_address": "KG 11 Ave",
        "city": "Kigali",
        "province": "Kigali",
        "district": "Gasabo",
        "country": "Rwanda",
    },
    "status": "active",
    "products_supplied": ["seedlings", "fertilizer", "tools"],
    "delivery_areas": ["Kigali", "Eastern Province"],
}

SAMPLE_PRODUCTS: list[dict[str, Any]] = [
    {
        "name": "Drip Irrigation Kit - Quarter Acre",
        "description": "Drip lines and emitters sized for young avocado orchards",
        "price": 45000,
        "category": "irrigation",
        "quantity": 20,
        "unit": "box",
    },
    {
        "name": "Pruning Shears - Professional Grade",
        "description": "High-quality pruning shears for avocado tree maintenance",
        "price": 8500,
        "category": "harvesting",
        "quantity": 25,
        "unit": "piece",
    },
    {
        "name": "Harvest Crates - Ventilated",
        "description": "Stackable ventilated crates for moving fruit from the field",
        "price": 3500,
        "category": "containers",
        "quantity": 150,
        "unit": "piece",
    },
    {
        "name": "Organic Pesticide - Neem Oil Based",
        "description": "Natural pesticide for pest control in avocado farming",
        "price": 12000,
        "category": "pest-management",
        "quantity": 30,
        "unit": "bottle",
    },
]


def seed_store(target: InMemoryStore, *, admin_password: str, agent_password: str) -> dict[str, Any]:
    summary: dict[str, Any] = {"admin": "exists", "agent": "exists", "supplier": "exists", "products_created": 0}

    if target.users_repository.count(query={"role": "admin"}) == 0:
        target.register_user(
            payload={
                "email": ADMIN_EMAIL,
                "password": admin_password,
                "full_name": "System Administrator",
                "role": "admin",
            }
        )
        summary["admin"] = "created"
        logger.info("seed_admin_created email=%s", ADMIN_EMAIL)

    if target.users_repository.count(query={"role": "agent"}) == 0:
        agent = target.register_user(
            payload={
                "email": AGENT_EMAIL,
                "password": agent_password,
                "full_name": "Sample Agent",
                "phone": "+250788123456",
                "role": "agent",
                "profile": {
                    "province": "Kigali",
                    "district": "Gasabo",
                    "service_areas": ["Kigali", "Eastern Province"],
                },
            }
        )
        target.create_agent_profile(
            actor=agent,
            payload={"province": "Kigali", "district": "Gasabo", "sector": "Kimironko"},
        )
        summary["agent"] = "created"
        logger.info("seed_agent_created email=%s", AGENT_EMAIL)

    supplier = target.suppliers_repository.find_one(query={"email": SUPPLIER_EMAIL})
    if supplier is None:
        supplier = target.create_supplier(payload=dict(SAMPLE_SUPPLIER))
        summary["supplier"] = "created"

    if target.products_repository.count() == 0:
        for product in SAMPLE_PRODUCTS:
            target.create_product(payload={**product, "supplier_id": supplier["id"]})
            summary["products_created"] += 1
        logger.info("seed_products_created count=%d", summary["products_created"])

    return summary
