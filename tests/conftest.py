import os
import sys
from pathlib import Path

# Make the src/ package and the shared test fakes importable without an install
_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_ROOT / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

# Ensure required environment variables for tracie.config
os.environ.setdefault("BRIDGE_URL", "ws://127.0.0.1:8765/bridge")
os.environ.setdefault("SESSION_DIR", str(_ROOT / "data" / "test-session"))
os.environ.setdefault("OWNER", "2348000000000")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
