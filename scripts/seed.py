from __future__ import annotations

import os
import sys
from pathlib import Path

from sqlmodel import Session, select

# --- make project root importable even if CWD is different ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Now we can import our app packages
from backend.core.db import engine, init_db  # noqa: E402
from backend.core.security import hash_password  # noqa: E402
from backend.models.pet import ActivityLevel, Gender, Pet, PetSize, PetType  # noqa: E402
from backend.models.user import User  # noqa: E402

# Two owners a short walk apart so each shows up in the other's feed
DEMO_OWNERS = [
    {
        "email": "seed-kadikoy@example.com",
        "name": "Deniz",
        "coordinates": (29.0275, 40.9903),
        "city": "Istanbul",
        "pets": [
            ("Mia", PetType.cat, Gender.female, PetSize.small, ActivityLevel.low),
            ("Rex", PetType.dog, Gender.male, PetSize.large, ActivityLevel.high),
        ],
    },
    {
        "email": "seed-besiktas@example.com",
        "name": "Ece",
        "coordinates": (29.0094, 41.0422),
        "city": "Istanbul",
        "pets": [
            ("Pamuk", PetType.cat, Gender.male, PetSize.medium, ActivityLevel.moderate),
            ("Zeytin", PetType.dog, Gender.female, PetSize.medium, ActivityLevel.high),
        ],
    },
]


def run() -> None:
    env_file = os.environ.get("ENV_FILE", "backend/.env")
    print(f"[seed] ENV_FILE={env_file}")

    init_db()
    created_users = 0
    created_pets = 0

    with Session(engine) as session:
        for owner in DEMO_OWNERS:
            email = str(owner["email"])
            user = session.exec(select(User).where(User.email == email)).first()
            if not user:
                longitude, latitude = owner["coordinates"]  # type: ignore[misc]
                user = User(
                    email=email,
                    name=str(owner["name"]),
                    password_hash=hash_password("SeedPass123!"),
                    longitude=longitude,
                    latitude=latitude,
                    city=str(owner["city"]),
                )
                session.add(user)
                session.commit()
                session.refresh(user)
                created_users += 1
                print(f"[seed] created user: {user.email}")
            else:
                print(f"[seed] user already exists: {user.email}")

            for name, pet_type, gender, size, activity in owner["pets"]:  # type: ignore[attr-defined]
                existing = session.exec(
                    select(Pet).where(Pet.owner_id == user.id, Pet.name == name)
                ).first()
                if existing:
                    print(f"[seed] pet already exists: {name}")
                    continue
                session.add(
                    Pet(
                        owner_id=user.id,
                        name=name,
                        type=pet_type,
                        gender=gender,
                        size=size,
                        activity_level=activity,
                        vaccinated=True,
                    )
                )
                session.commit()
                created_pets += 1
                print(f"[seed] created pet: {name} ({pet_type.value})")

    print(f"[seed] done. users_created={created_users}, pets_created={created_pets}")


if __name__ == "__main__":
    run()
