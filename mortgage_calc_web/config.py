"""Configuration of the mortgage simulator web application.

Values come from environment variables so that the same code runs locally
(SQLite next to the app) and in deployments that point at PostgreSQL/MySQL.
"""

import os


class Config:
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    SIMULATION_DATABASE_URL = os.environ.get(
        "SIMULATION_DATABASE_URL", "sqlite:///simulations.sqlite3"
    )
    # Oldest simulations beyond this count are dropped per caller; <= 0 keeps all.
    SIMULATION_MAX_PER_USER = int(os.environ.get("SIMULATION_MAX_PER_USER", "50"))
    LOG_LEVEL = os.environ.get("MORTGAGE_LOG_LEVEL", "INFO")
    # Take the caller identity from the X-User-Token header. Enable only behind
    # a gateway that authenticates callers and sets the header itself.
    TRUST_USER_TOKEN_HEADER = os.environ.get("TRUST_USER_TOKEN_HEADER", "0").lower() in (
        "1",
        "true",
        "yes",
    )
