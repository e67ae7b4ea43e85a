import os
from dotenv import load_dotenv

# Загрузка .env
load_dotenv()

# База данных
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///staking.db")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "0") == "1"

# Логирование
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Sponsor tree walks (volume propagation, rank re-evaluation)
MAX_TREE_DEPTH = int(os.getenv("MAX_TREE_DEPTH", "50"))

# Daily distribution job
DISTRIBUTION_JOB_NAME = os.getenv("DISTRIBUTION_JOB_NAME", "distribute-daily-rewards")
DISTRIBUTION_HOUR_UTC = int(os.getenv("DISTRIBUTION_HOUR_UTC", "0"))
JOB_LOCK_TIMEOUT_SECONDS = int(os.getenv("JOB_LOCK_TIMEOUT_SECONDS", "3600"))
