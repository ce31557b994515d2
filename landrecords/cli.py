"""Land records operator CLI (landrecords)."""

import logging
from typing import Optional

import typer

from landrecords.core.config import settings

app = typer.Typer(name="landrecords", help="Land records operator CLI")
db_app = typer.Typer(help="Database management commands")
approvals_app = typer.Typer(help="Approval workflow maintenance")
app.add_typer(db_app, name="db")
app.add_typer(approvals_app, name="approvals")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose or settings.DEBUG else settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@db_app.command("init")
def db_init():
    """Create all tables."""
    import landrecords.models  # noqa: F401
    from landrecords.db.base import Base
    from landrecords.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created")


@db_app.command("seed")
def db_seed(
    sample: bool = typer.Option(True, "--sample/--no-sample", help="Also load demo properties"),
):
    """Seed permissions, roles, super-admin, and sample data."""
    from landrecords.db.session import SessionLocal
    from landrecords.db.seeds.seed_roles import seed_roles
    from landrecords.db.seeds.seed_super_admin import seed_super_admin
    from landrecords.db.seeds.seed_sample_data import seed_sample_data

    db = SessionLocal()
    try:
        roles = seed_roles(db)
        seed_super_admin(db)
        properties = seed_sample_data(db) if sample else 0
    finally:
        db.close()
    typer.echo(f"Seeds applied ({roles} role(s), {properties} sample propert(ies))")


@db_app.command("reset")
def db_reset():
    """Drop and recreate all tables (DANGER)."""
    confirm = typer.confirm("This will DROP every table, including the audit trail. Continue?")
    if not confirm:
        raise typer.Abort()
    import landrecords.models  # noqa: F401
    from landrecords.db.base import Base
    from landrecords.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("Database reset")


@approvals_app.command("expire")
def approvals_expire(
    hours: Optional[int] = typer.Option(None, "--hours", help="Max age of a pending request"),
):
    """Expire pending requests older than the configured age."""
    from landrecords.db.immutability import register_immutability_listeners
    from landrecords.db.session import SessionLocal
    from landrecords.services.approval_service import approval_service

    register_immutability_listeners()
    db = SessionLocal()
    try:
        expired = approval_service.expire_stale(db, max_age_hours=hours)
    finally:
        db.close()
    typer.echo(f"Expired {len(expired)} request(s)" + (f": {expired}" if expired else ""))


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("landrecords.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
