import os

# Must run before lcf_auto reads its cached settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@lcf-auto.fr")
os.environ.setdefault("ADMIN_PASSWORD", "Admin@123")
