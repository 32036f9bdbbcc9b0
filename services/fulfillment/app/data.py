"""初期投入用のアウトレットデータ (manage.py seed-outlets)"""

from .models import Outlet

OUTLETS = [
    Outlet(
        id="main-canteen",
        name="Main Canteen",
        description="Full meals, thalis and daily specials from the central kitchen.",
        image_id="outlet-main-canteen",
        is_active=True,
        base_delivery_time=20,
    ),
    Outlet(
        id="juice-bar",
        name="Juice Bar",
        description="Fresh juices, shakes and smoothies.",
        image_id="outlet-juice-bar",
        is_active=True,
        base_delivery_time=10,
    ),
    Outlet(
        id="south-express",
        name="South Express",
        description="Dosa, idli and filter coffee.",
        image_id="outlet-south-express",
        is_active=True,
        base_delivery_time=15,
    ),
    Outlet(
        id="snack-shack",
        name="Snack Shack",
        description="Sandwiches, rolls and quick bites.",
        image_id="outlet-snack-shack",
        is_active=True,
        base_delivery_time=12,
    ),
    Outlet(
        id="night-cafe",
        name="Night Cafe",
        description="Late-night coffee and desserts. Opens after 8 pm.",
        image_id="outlet-night-cafe",
        is_active=False,
        base_delivery_time=15,
    ),
]
