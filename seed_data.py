"""Seed data script for the marketplace database.

Populates the database with demo accounts, a small service catalog and one
booking whose milestones are generated from the ``content_creation`` plan.
The script is idempotent: it checks for existing records before inserting.

Usage (from the project root):
    python seed_data.py
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from marketplace.database import Base, SessionLocal, engine
from marketplace.models import Booking, Profile, Service
from marketplace.schemas.seed import SeedRequest
from marketplace.services.booking_service import generate_booking_number
from marketplace.services.seed_service import seed_milestones
from marketplace.utils.security import hash_password

DEMO_PASSWORD = "Demo123!"


# ---------------------------------------------------------------------------
# Seed functions
# ---------------------------------------------------------------------------


def seed_profiles(session) -> dict[str, Profile]:
    """Insert one admin, one provider and one client if missing."""
    registros = [
        ("admin", "admin@marketplace.local", "Platform Administrator", "admin", None),
        ("provider", "provider@marketplace.local", "Amal Al-Harthy", "provider", "Bright Studio LLC"),
        ("client", "client@marketplace.local", "Salim Al-Busaidi", "client", "Coastal Trading"),
    ]
    perfiles: dict[str, Profile] = {}
    creados = 0
    for username, email, full_name, role, company in registros:
        perfil = session.query(Profile).filter(Profile.username == username).first()
        if perfil is None:
            perfil = Profile(
                username=username,
                email=email,
                password_hash=hash_password(DEMO_PASSWORD),
                full_name=full_name,
                role=role,
                company_name=company,
                is_active=True,
            )
            session.add(perfil)
            creados += 1
        perfiles[role] = perfil
    session.flush()
    print(f"  [OK] Profile — {creados} registros insertados.")
    return perfiles


def seed_services(session, provider: Profile) -> list[Service]:
    """Insert the demo catalog for the provider."""
    if session.query(Service).filter(Service.provider_id == provider.id).count() > 0:
        print("  [SKIP] Service — provider already has services.")
        return session.query(Service).filter(Service.provider_id == provider.id).all()

    registros = [
        Service(
            provider_id=provider.id,
            title="Social media content package",
            description="Monthly content calendar, copywriting and visuals for two channels.",
            category="content_creation",
            approval_status="approved",
            base_price=Decimal("350.000"),
            estimated_duration="4 weeks",
            tags=["content", "social"],
        ),
        Service(
            provider_id=provider.id,
            title="Website SEO audit",
            description="Technical audit, keyword research and an on-page optimisation plan.",
            category="seo",
            approval_status="approved",
            base_price=Decimal("220.000"),
            estimated_duration="3 weeks",
            tags=["seo"],
        ),
    ]
    session.add_all(registros)
    session.flush()
    print(f"  [OK] Service — {len(registros)} registros insertados.")
    return registros


def seed_bookings(session, client: Profile, service: Service) -> Booking | None:
    """Insert one confirmed booking for the client, unless one exists."""
    if session.query(Booking).filter(Booking.client_id == client.id).count() > 0:
        print("  [SKIP] Booking — client already has bookings.")
        return None

    start = datetime.utcnow().replace(microsecond=0)
    booking = Booking(
        booking_number=generate_booking_number(start),
        title=service.title,
        client_id=client.id,
        provider_id=service.provider_id,
        service_id=service.id,
        status="confirmed",
        start_time=start,
        end_time=start + timedelta(weeks=4),
        total_cost=service.base_price,
        currency=service.currency,
    )
    session.add(booking)
    session.flush()
    print(f"  [OK] Booking — {booking.booking_number} insertado.")
    return booking


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Create tables if needed and load the demo data."""
    print("=" * 60)
    print("  Marketplace — Seed Data Script")
    print("=" * 60)

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        print("\n[1/4] Profiles...")
        perfiles = seed_profiles(session)

        print("\n[2/4] Services...")
        servicios = seed_services(session, perfiles["provider"])

        print("\n[3/4] Bookings...")
        booking = seed_bookings(session, perfiles["client"], servicios[0])
        session.commit()

        print("\n[4/4] Milestones (content_creation plan)...")
        if booking is not None:
            result = seed_milestones(
                session,
                SeedRequest(booking_id=booking.id, plan="content_creation"),
                perfiles["provider"],
                None,
            )
            print(f"  [OK] Milestone — {len(result.created)} registros insertados.")
        else:
            print("  [SKIP] Milestone — no new booking.")

        print("\n" + "=" * 60)
        print(f"  Seed completed. Demo password for all accounts: {DEMO_PASSWORD}")
        print("=" * 60)

    except Exception as exc:
        session.rollback()
        print("\n[ERROR] Seed failed, rolled back.")
        print(f"  Detail: {exc}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
