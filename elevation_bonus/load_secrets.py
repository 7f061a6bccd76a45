import os
from dotenv import load_dotenv

load_dotenv()

database_url = os.getenv("DATABASE_URL")
user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME")
admin_password = os.getenv("ADMIN_PASSWORD")

bonus_lock_timeout = float(os.getenv("BONUS_LOCK_TIMEOUT", "5"))

redis_host = os.getenv("REDIS_HOST")
redis_port = int(os.getenv("REDIS_PORT", "6379"))

competition_start_date = os.getenv("COMPETITION_START_DATE")
round_duration_days = int(os.getenv("ROUND_DURATION_DAYS", "5"))
rounds_per_season = int(os.getenv("ROUNDS_PER_SEASON", "5"))

if __name__ == "__main__":
    print(host, port, db_name, redis_host, competition_start_date)
