import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "payroll_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

ENGINE = {
    "ESCALATION_HOURS": int(os.getenv("ESCALATION_HOURS", "24")),
    "CUTOFF_ADVANCE_HOURS": int(os.getenv("CUTOFF_ADVANCE_HOURS", "48")),
    "DEFAULT_MAX_CORRECTION_MINUTES": int(os.getenv("DEFAULT_MAX_CORRECTION_MINUTES", "480")),
    "DEFAULT_PUNCH_POLICY": os.getenv("DEFAULT_PUNCH_POLICY", "MULTIPLE"),
    "IMPORT_CSV_PATH": os.getenv("IMPORT_CSV_PATH", ""),
}
