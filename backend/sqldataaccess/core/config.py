from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Seconds allowed for opening a connection
    EXTERNAL_DB_CONNECT_TIMEOUT: int = 10
    # Default command timeout in seconds; None leaves the server default in place
    EXTERNAL_DB_STATEMENT_TIMEOUT: int | None = None

    # Stored-procedure error-signaling convention
    PROCEDURE_RETURN_CODE_PARAMETER: str = "Ret_Code"
    PROCEDURE_RETURN_MESSAGE_PARAMETER: str = "Ret_Message"


settings = Settings()  # type: ignore
