from pydantic_settings import BaseSettings

class Settings(BaseSettings):

    DATABASE_URL : str
    JWT_SECRET :str
    JWT_ALGO : str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES : str = "30"
    PASS_HASH_SCHEME:str = "argon2"

    # 32 byte key , hex (64 chars) or urlsafe base64 encoded
    PAYOUT_ENCRYPTION_KEY : str
    # secret the old cbc records were derived from , only needed while legacy rows exist
    PAYOUT_LEGACY_ENCRYPTION_SECRET : str | None = None
    # "legacy" checks an add password only when sent and skips update , "strict" gates every change
    PAYOUT_STEP_UP_POLICY : str = "legacy"
    PAYOUT_MAX_BANK_ACCOUNTS : int = 5
    PAYOUT_EXPOSE_VERIFICATION_CODE : bool = False

    class Config:
        env_file = ".env"
        extra="ignore"

config_settings = Settings()
