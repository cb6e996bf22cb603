import os
from dotenv import load_dotenv

load_dotenv()

BOT_TOKEN = os.getenv("BOT_TOKEN")
MONGODB_HOST = os.getenv("MONGODB_HOST", "localhost")
MONGODB_PORT = int(os.getenv("MONGODB_PORT", "27017"))
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "matchmaking")
# Транзакции MongoDB работают только на replica set
MONGODB_REPLICA_SET = os.getenv("MONGODB_REPLICA_SET", "")
# mongo | memory
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mongo")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
