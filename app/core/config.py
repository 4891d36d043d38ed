from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'pasteleria_user'
    POSTGRES_PASSWORD: str = 'pasteleria_pass'
    POSTGRES_DB: str = 'pasteleria_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Sobrescribe la URL de Postgres (ej. sqlite:///./dev.db)

    # Redis settings
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Cake Bar
    CAKE_BAR_PREP_MINUTES: int = 30

    # Control de asistencia
    MEAL_BREAK_MAX_MINUTES: int = 60
    SHORT_BREAK_MAX_MINUTES: int = 15
    MEAL_WARNING_MINUTES: int = 10  # Aviso cuando quedan estos minutos de comida
    DEFAULT_SHIFT_START: str = '08:00'
    LATE_ALERT_MINUTES: int = 15
    LATE_ERROR_MINUTES: int = 30
    NO_CHECKIN_ALERT_HOUR: int = 9
    NO_CHECKIN_ERROR_HOUR: int = 10
    EMPLOYEES_CAN_EDIT_SCHEDULE: bool = False

    # Pedidos personalizados
    MIN_ADVANCE_RATIO: float = 0.5

    # Inventario
    DEFAULT_MIN_STOCK: int = 5

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "EMPLOYEES_CAN_EDIT_SCHEDULE", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
