import os
from dotenv import load_dotenv

load_dotenv()

API_NAME = os.getenv("API_NAME", "Card Finance Forecaster API")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("API_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Forecasting
SMOOTHING_ALPHA = float(os.getenv("FORECAST_SMOOTHING_ALPHA", "0.3"))
NN_EPOCHS = int(os.getenv("FORECAST_NN_EPOCHS", "100"))
NN_LEARNING_RATE = float(os.getenv("FORECAST_NN_LEARNING_RATE", "0.01"))
NN_SEED = int(os.getenv("FORECAST_NN_SEED", "42"))
CURRENCY = os.getenv("FORECAST_CURRENCY", "₼")

# Report cache; empty path keeps reports in memory only
REPORT_CACHE_PATH = os.getenv("REPORT_CACHE_PATH", "") or None
REPORT_CACHE_KEY = "ai_financial_analysis"
REPORT_MAX_AGE_HOURS = float(os.getenv("REPORT_MAX_AGE_HOURS", "24"))
