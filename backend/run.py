"""Run the API server with the project .env loaded"""
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(BACKEND_DIR))

from dotenv import load_dotenv

for env_file in (BACKEND_DIR.parent / ".env", BACKEND_DIR / ".env"):
    if env_file.exists():
        load_dotenv(env_file, override=True)
        break

if __name__ == "__main__":
    import uvicorn

    from halal_tools.core.config import get_settings
    from halal_tools.main import app

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
