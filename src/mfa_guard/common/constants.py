"""Centralized constants for MFA Guard."""


# ===== AGGREGATION =====
class AggregationConstants:
    # Weight points that count as "fully satisfied"
    PASS_THRESHOLD = 100


# ===== AUDIT & LOGGING =====
class AuditConstants:
    HASH_ALGORITHM = "sha256"
    LOG_FILENAME_PATTERN = "mfa_audit_{date}.jsonl"
    USER_PASSED_MFA_EVENT = "user_passed_mfa"


# ===== FACTOR EVALUATION =====
class EvaluatorConstants:
    DEFAULT_MAX_WORKERS = 4
    THREAD_NAME_PREFIX = "FactorWorker"


# ===== INPUT VALIDATION =====
class ValidationConstants:
    FACTOR_NAME_PATTERN = r"^[a-z][a-z0-9_]{0,63}$"
    FACTOR_ID_PATTERN = r"^[A-Za-z0-9_\-]{1,128}$"


# ===== DENIAL =====
class DenialConstants:
    DEFAULT_REDIRECT_URL = "/"
    ERROR_CODE = "NOT_ENOUGH_FACTORS"
