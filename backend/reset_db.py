"""Reset database to clean state."""
from salonbook.lib.db import drop_db, engine, init_db

print(f"Resetting database at {engine.url.render_as_string(hide_password=True)}...")

drop_db()
init_db()

print("Database reset complete!")
