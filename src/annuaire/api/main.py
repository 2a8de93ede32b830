"""
Annuaire API entry point.

Settings are loaded at import time: a missing ESANTE_API_KEY stops the
process before it serves anything.
"""

from annuaire.api.app import create_app
from annuaire.config import get_settings
from annuaire.observability import configure_logging

settings = get_settings()
configure_logging(settings.app.log_level, json_output=not settings.is_development)

app = create_app(settings)


def run() -> None:
    import uvicorn
    
    uvicorn.run(
        "annuaire.api.main:app",
        host=settings.app.api_host,
        port=settings.app.api_port,
    )


if __name__ == "__main__":
    run()
