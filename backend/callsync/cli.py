from typing import Optional

import typer
import uvicorn
from sqlalchemy.orm import Session

from callsync.core.config import settings
from callsync.core.database import Base, SessionLocal, engine
from callsync.core.errors import CallSyncError
from callsync.core.logging import setup_logging
from callsync.services.sync import sync_assistant_calls
from callsync.services.vapi_client import VapiClient

app = typer.Typer()


@app.command()
def sync(
    assistant_id: str = typer.Option(..., "--assistant-id"),
    start: Optional[str] = None,
    end: Optional[str] = None,
):
    setup_logging(settings.log_level)
    db: Session = SessionLocal()
    client = VapiClient.from_settings(settings)
    try:
        result = sync_assistant_calls(
            db, client, assistant_id, start=start, end=end, page_limit=settings.vapi_page_limit
        )
    except CallSyncError as exc:
        typer.echo(f"Sync failed: {exc.message}", err=True)
        raise typer.Exit(code=1)
    finally:
        client.close()
        db.close()
    typer.echo(f"Upserted {result.upserted} call(s) from {result.source or 'no source'}")


@app.command()
def init_db():
    from callsync import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created")


@app.command()
def serve(host: str = "0.0.0.0", port: int = 8000):
    uvicorn.run("callsync.main:app", host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    app()
