"""Knowledge base CLI tool (kbctl)."""

import typer

app = typer.Typer(name="kbctl", help="Knowledge base CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables that do not exist yet."""
    import knowledge_base.models  # noqa: F401
    from knowledge_base.db.base import Base
    from knowledge_base.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created (or already present)")


@db_app.command("seed")
def db_seed():
    """Seed the predefined admin, supervisor and user accounts."""
    from knowledge_base.db.session import SessionLocal
    from knowledge_base.services.identity_service import identity_service

    db = SessionLocal()
    try:
        created = identity_service.seed_predefined_users(db)
    finally:
        db.close()
    typer.echo(f"Seeded {created} user(s)")


@db_app.command("reset")
def db_reset():
    """Drop and recreate every table (DANGER)."""
    confirm = typer.confirm("This will DROP all knowledge base tables. Continue?")
    if not confirm:
        raise typer.Abort()
    import knowledge_base.models  # noqa: F401
    from knowledge_base.db.base import Base
    from knowledge_base.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("Database reset")


@app.command("trending")
def trending(
    limit: int = typer.Option(10, help="How many questions to show"),
    category: str = typer.Option(None, help="ibml, softtrac or omniscan"),
):
    """Print the current trending questions."""
    from knowledge_base.db.session import SessionLocal
    from knowledge_base.services.moderation_service import moderation_service
    from knowledge_base.services.ranking_service import score_of

    db = SessionLocal()
    try:
        questions = moderation_service.list_questions(
            db, category=category, sort_by="trending", limit=limit,
        )
    finally:
        db.close()
    if not questions:
        typer.echo("No approved questions yet")
    for q in questions:
        typer.echo(
            f"  {score_of(q):8.3f}  [{q.category.value}] {q.title} "
            f"({q.views} views, {q.approved_answer_count} answers)"
        )


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the API server."""
    import uvicorn
    uvicorn.run("knowledge_base.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
