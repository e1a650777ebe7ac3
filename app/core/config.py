import os
from pydantic import model_validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    env: str = os.getenv("ENV", "unit-test")
    postgres_url: str
    rabbitmq_url: str
    exchange_name: str = "elearning.submissions"
    queue_name: str = "submissions.archive"
    prefetch_count: int = 10

    # valori letti ma non validati: l'errore emerge nello step che li usa
    google_credentials: str = ""
    bucket_name: str = ""
    mailgun_api_key: str = ""
    mailgun_base_url: str = "https://api.mailgun.net"
    email_domain: str = ""
    email_sender: str = ""
    audit_table: str = "email_tracking"

    email_timeout_seconds: float = 30.0
    download_timeout_seconds: float = 60.0
    process_all_records: bool = False

    class Config:
        env_file = None

    @property
    def sql_echo(self) -> bool:
        return self.env in {"dev", "development"}

    @model_validator(mode="after")
    def default_sender(self) -> "Settings":
        if not self.email_sender and self.email_domain:
            self.email_sender = f"mailgun@{self.email_domain}"
        return self


def load_settings() -> Settings:
    return Settings()
