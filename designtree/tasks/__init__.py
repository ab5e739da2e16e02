"""Init-logik för paketet *tasks*.

• Laddar automatiskt projektets .env så att figma_client/worker får
  FIGMA_TOKEN, CELERY_BROKER_URL m.fl. även när Celery startas fristående.
"""

from pathlib import Path
from dotenv import load_dotenv, find_dotenv

# Leta upp .env uppåt i katalogträdet, annars försök i repo-roten
_env_path = find_dotenv(usecwd=True)
if not _env_path:
    _env_path = str(Path(__file__).resolve().parents[2] / ".env")

load_dotenv(_env_path)
