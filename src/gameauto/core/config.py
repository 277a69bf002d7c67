"""
核心配置模块
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # 设备
    adb_path: str = Field(default="adb")
    adb_addr: str = Field(default="127.0.0.1:5555")
    pkg_name: str = Field(default="")
    capture_timeout_sec: float = Field(default=2.0)

    # 识图
    image_match_threshold: float = Field(default=0.7)
    image_high_score: float = Field(default=0.9)
    position_tolerance: float = Field(default=0.25)
    color_tolerance: float = Field(default=50.0)

    # OCR
    paddle_ocr_lang: str = Field(default="ch")
    ocr_model_dir: str = Field(default="./models/ocr")
    ocr_timeout_sec: float = Field(default=3.0)
    ocr_min_confidence: float = Field(default=0.6)

    # 远程 AI 识别
    ai_check_url: str = Field(default="https://game-auto-editor.vercel.app/api/ai-check")
    ai_api_secret: str = Field(default="")
    ai_connect_timeout_sec: float = Field(default=5.0)
    ai_read_timeout_sec: float = Field(default=10.0)
    ai_jpeg_quality: int = Field(default=70)

    # 场景引擎
    engine_warmup_ms: int = Field(default=1000)
    engine_loop_interval_ms: int = Field(default=500)
    engine_idle_interval_ms: int = Field(default=1000)
    transition_grace_ms: int = Field(default=3000)
    transition_check_interval_ms: int = Field(default=500)
    stuck_retry_every: int = Field(default=6)
    stuck_max_checks: int = Field(default=20)
    lost_frame_limit: int = Field(default=20)
    capture_backoff_ms: int = Field(default=1000)
    error_backoff_ms: int = Field(default=1000)
    relaunch_backoff_ms: int = Field(default=3000)
    worker_join_timeout_sec: float = Field(default=1.0)

    # 动作
    swipe_segmented: bool = Field(default=True)
    sleep_chunk_ms: int = Field(default=200)

    # 日志
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="./logs")
    log_retention_days: int = Field(default=3)
    log_console_enabled: bool = Field(default=True)
    log_file_enabled: bool = Field(default=True)

    # 时区（TIME 调度使用）
    timezone: str = Field(default="Asia/Shanghai")


# 全局配置实例
settings = Settings()
