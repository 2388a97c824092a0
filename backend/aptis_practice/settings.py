from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Scoring model (multimodal, JSON schema output)
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Illustrations for Speaking Parts 2 and 3
	gemini_image_model: str = Field(default="imagen-4.0-generate-001", validation_alias="GEMINI_IMAGE_MODEL")
	illustrations_enabled: bool = Field(default=True, validation_alias="ILLUSTRATIONS_ENABLED")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	request_timeout_seconds: float = Field(default=60.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# Feedback language: "vi" (default, as the exam prep audience) or "en"
	feedback_language: str = Field(default="vi", validation_alias="FEEDBACK_LANGUAGE")

	# Capture: "stream" (audio chunks uploaded by the client) or "microphone" (local sounddevice input)
	capture_backend: str = Field(default="stream", validation_alias="CAPTURE_BACKEND")
	microphone_sample_rate: int = Field(default=16000, validation_alias="MICROPHONE_SAMPLE_RATE")
	countdown_interval_seconds: float = Field(default=1.0, validation_alias="COUNTDOWN_INTERVAL_SECONDS")

	# Timer profiles (seconds)
	speaking_part1_seconds: int = Field(default=30, validation_alias="SPEAKING_PART1_SECONDS")
	speaking_part2_seconds: int = Field(default=45, validation_alias="SPEAKING_PART2_SECONDS")
	speaking_part3_seconds: int = Field(default=45, validation_alias="SPEAKING_PART3_SECONDS")
	speaking_part4_prep_seconds: int = Field(default=60, validation_alias="SPEAKING_PART4_PREP_SECONDS")
	speaking_part4_seconds: int = Field(default=120, validation_alias="SPEAKING_PART4_SECONDS")
	writing_part1_seconds: int = Field(default=600, validation_alias="WRITING_PART1_SECONDS")
	writing_part23_seconds: int = Field(default=600, validation_alias="WRITING_PART23_SECONDS")
	writing_part4_seconds: int = Field(default=1800, validation_alias="WRITING_PART4_SECONDS")
	speaking_full_test_seconds: int = Field(default=900, validation_alias="SPEAKING_FULL_TEST_SECONDS")
	writing_full_test_seconds: int = Field(default=3600, validation_alias="WRITING_FULL_TEST_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
