import os
import random
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from site_analytics.adapters.sqlite.migrator import SQLiteMigrator
from site_analytics.adapters.sqlite.repos import SQLiteEventStore, SQLitePageNameRegistry

SERVICES = [
    ("design-de-sobrancelhas", "Design de Sobrancelhas"),
    ("limpeza-de-pele", "Limpeza de Pele"),
    ("micropigmentacao", "Micropigmentação"),
]

CLICK_ELEMENTS = [
    "service-link",
    "contact-button",
    "whatsapp-button",
    "instagram-button",
    "nav-logo",  # not functional, filtered out by the dashboard
]


def seed(days: int = 14, sessions_per_day: int = 20) -> None:
    data_dir = os.environ.get("SITE_ANALYTICS_DATA_DIR", "./data")
    os.makedirs(data_dir, exist_ok=True)

    db_path = f"{data_dir}/analytics.db"
    print(f"Seeding to {db_path}")

    SQLiteMigrator(db_path, "migrations").run_migrations()

    registry = SQLitePageNameRegistry(db_path)
    service_ids = [registry.add_service(slug, name) for slug, name in SERVICES]

    store = SQLiteEventStore(db_path)
    now = datetime.now(UTC)
    count = 0

    for day in range(days):
        for _ in range(sessions_per_day):
            session_id = str(uuid4())
            ts = now - timedelta(days=day, minutes=random.randint(0, 1200))

            if random.random() < 0.5:
                page = {"page_type": "homepage"}
            else:
                idx = random.randrange(len(SERVICES))
                page = {
                    "page_type": "service",
                    "page_id": service_ids[idx],
                    "page_slug": SERVICES[idx][0],
                }

            store.insert_raw({"created_at": ts, "session_id": session_id,
                              "event_type": "page_view", **page})
            count += 1

            for depth in (25, 50, 75, 100):
                if random.random() > 0.6:
                    break
                ts += timedelta(seconds=5)
                store.insert_raw({"created_at": ts, "session_id": session_id,
                                  "event_type": "scroll",
                                  "event_data": {"scroll_depth": depth}, **page})
                count += 1

            if random.random() < 0.4:
                element = random.choice(CLICK_ELEMENTS)
                store.insert_raw({"created_at": ts + timedelta(seconds=3),
                                  "session_id": session_id, "event_type": "click",
                                  "event_data": {"element": element, "text": element.replace("-", " ")},
                                  **page})
                count += 1

    print(f"Seeded {count} events across {days} days.")


if __name__ == "__main__":
    seed()
