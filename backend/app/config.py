from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_ENV: str = "development"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    FRONTEND_URL: str = "http://localhost:3000"

    # AWS : credentials vides = chaîne de credentials par défaut du SDK
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_SESSION_TOKEN: str = ""
    S3_BUCKET_NAME: str  # obligatoire, pas de valeur par défaut

    # Timeout (secondes) appliqué à chaque appel S3 / détection
    SERVICE_TIMEOUT: float = 30.0

    # Détection de labels : "rekognition" ou "google"
    LABEL_PROVIDER: str = "rekognition"
    GOOGLE_APPLICATION_CREDENTIALS: str = ""

    class Config:
        env_file = ".env"


settings = Settings()
