from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "fence-planner"
    LOG_LEVEL: str = "INFO"

    # Panel fitting
    PANEL_LENGTH_MM: float = 2390.0
    CUT_BUFFER_MM: float = 300.0
    MIN_LEFTOVER_MM: float = 300.0
    MAX_PANELS_PER_RUN: int = 2000

    # Decking
    MAX_BOARD_LENGTH_MM: float = 5400.0
    BOARD_WIDTH_MM: float = 140.0
    BOARD_GAP_MM: float = 3.0
    JOIST_SPACING_MM: float = 450.0

    # Snapping
    SNAP_TOLERANCE_MM: float = 250.0
    ANGLE_SNAP_STEP_DEG: float = 15.0

    # Pricing catalog. The upstream sheet is optional, the seed file ships with the package
    PRICING_SHEET_ID: str = ""
    PRICING_SHEET_GID: str = "0"
    PRICING_SEED_PATH: str = ""
    PRICING_CACHE_TTL_SECONDS: int = 600
    PRICING_UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    class Config:
        env_file = ".env"


settings = Settings()
