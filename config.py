import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent
DATA_PATH = Path(os.getenv("DATA_PATH", BASE_DIR / "data" / "blog.json"))
IMAGES_PATH = Path(os.getenv("IMAGES_PATH", BASE_DIR / "data" / "images"))

# Site metadata
SITE_TITLE = os.getenv("SITE_TITLE", "bareblog")

# Auth / session
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
ADMIN_ROLE = "Admin"
ADMIN_USER = os.getenv("ADMIN_USER", "admin")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@test.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "password1")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
