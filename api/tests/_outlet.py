"""Menu and floor fixtures shared by the order core tests."""

from __future__ import annotations

from decimal import Decimal

from api.app.models_tenant import MenuItem, RestaurantTable

ORG = "outlet-1"

PANEER_TIKKA = 1
CHICKEN_BIRYANI = 2
BUTTER_NAAN = 3
MASALA_CHAI = 4
GULAB_JAMUN = 5

T3 = 3
T5 = 5
PATIO_1 = 11


async def seed_outlet(session, organization_id: str = ORG) -> None:
    """Add a small menu and three tables for ``organization_id``."""

    session.add_all(
        [
            MenuItem(id=PANEER_TIKKA, organization_id=organization_id,
                     name="Paneer Tikka", category="Starters", price=Decimal("349")),
            MenuItem(id=CHICKEN_BIRYANI, organization_id=organization_id,
                     name="Chicken Biryani", category="Mains", price=Decimal("449")),
            MenuItem(id=BUTTER_NAAN, organization_id=organization_id,
                     name="Butter Naan", category="Breads", price=Decimal("60")),
            MenuItem(id=MASALA_CHAI, organization_id=organization_id,
                     name="Masala Chai", category="Beverages", price=Decimal("40")),
            MenuItem(id=GULAB_JAMUN, organization_id=organization_id,
                     name="Gulab Jamun", category="Desserts", price=Decimal("120"),
                     is_available=False),
        ]
    )
    session.add_all(
        [
            RestaurantTable(id=T3, organization_id=organization_id, number=3,
                            section="Main", capacity=4),
            RestaurantTable(id=T5, organization_id=organization_id, number=5,
                            section="Main", capacity=6),
            RestaurantTable(id=PATIO_1, organization_id=organization_id, number=1,
                            section="Patio", capacity=2),
        ]
    )
    await session.commit()
