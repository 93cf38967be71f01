import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read once at import time, so the environment is fixed here.
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="worklog-tests-")
os.environ["TZ"] = "Europe/Riga"
os.environ["API_KEY"] = ""
for name in ("DATABASE_URL", "DB_URL", "MEDIA_DIR"):
    os.environ.pop(name, None)
