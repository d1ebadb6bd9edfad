import sys
from pathlib import Path

from app.db.session import engine, Session, init_db
from app.db.seed import seed_all

DEFAULT_SEED_PATH = "app/db/seed_data.yaml"

def run_seed(seed_path: str = DEFAULT_SEED_PATH):
    init_db()
    with Session(engine) as session:
        # Idempotent : relancer le seed ne duplique ni comptes, ni médias, ni droits
        seed_all(session=session, seed_path=Path(seed_path))

if __name__ == "__main__":
    run_seed(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_SEED_PATH)
