import os
import json
import boto3
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class AWSSecretsManager:
    """AWS Secrets Manager integration for production deployments"""

    def __init__(self, region_name: str = "ap-southeast-2"):
        self.region_name = region_name
        self._client = None

    @property
    def client(self):
        """Lazily created Secrets Manager client"""
        if self._client is None:
            self._client = boto3.client('secretsmanager', region_name=self.region_name)
        return self._client

    def get_secret(self, secret_name: str) -> dict:
        """Retrieve a JSON secret and return it as a dict"""
        try:
            response = self.client.get_secret_value(SecretId=secret_name)
            return json.loads(response['SecretString'])
        except Exception as e:
            raise RuntimeError(f"Failed to retrieve secret '{secret_name}': {e}") from e

class Settings(BaseSettings):
    # DB Settings
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Application settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    FRONTEND_URL: str = "http://localhost:5173"

    # Server configuration
    WORKERS: int = 1
    TIMEOUT_KEEP_ALIVE: int = 5
    TIMEOUT_GRACEFUL_SHUTDOWN: int = 30

    # Cue execution
    FRAME_RATE: int = 30
    DEFAULT_START_BRIGHTNESS: int = 128
    COMPLETION_GRACE_SECONDS: float = 10.0

    # Device connectivity
    MONITOR_INTERVAL_SECONDS: float = 10.0
    MAX_ERROR_COUNT: int = 3
    WLED_STATE_TIMEOUT: float = 10.0
    WLED_PROBE_TIMEOUT: float = 5.0
    WLED_WRITE_WORKERS: int = 64
    WLED_READ_WORKERS: int = 32
    WLED_PROBE_WORKERS: int = 32

    # AWS configuration (production only)
    AWS_REGION: str = "ap-southeast-2"
    AWS_SECRET_NAME: Optional[str] = None

    def __init__(self, **kwargs):
        # Production deployments keep the database credentials in Secrets Manager
        if os.getenv('AWS_SECRET_NAME') and os.getenv('ENVIRONMENT') == 'production':
            try:
                secrets = self._load_from_aws_secrets()
                # Explicit kwargs and environment variables win over the secret
                for key, value in secrets.items():
                    if key not in kwargs and not os.getenv(key):
                        kwargs[key] = value
            except (boto3.exceptions.Boto3Error, RuntimeError, json.JSONDecodeError, KeyError) as e:
                print(f"Warning: Failed to load AWS secrets, using .env fallback: {e}")

        super().__init__(**kwargs)

    def _load_from_aws_secrets(self) -> dict:
        """Load configuration overrides from AWS Secrets Manager"""
        secret_name = os.getenv('AWS_SECRET_NAME')
        region = os.getenv('AWS_REGION', 'ap-southeast-2')

        secrets_manager = AWSSecretsManager(region_name=region)
        return secrets_manager.get_secret(secret_name)

    @property
    def frame_interval(self) -> float:
        """Seconds between interpolation frames"""
        return 1.0 / self.FRAME_RATE

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
