from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "cohortroles"

    # ---------------------------------------------------------------------
    # API contract / OpenAPI
    # ---------------------------------------------------------------------

    api_version: str = "1.0.0"
    api_description: str = (
        "Cohort auto roles API.\n\n"
        "Mentors (holders of a marker role) get a target role over every other "
        "member of their cohort. Grants are applied by a background sync.\n\n"
        "Required headers: X-Role, X-Actor-User-Id."
    )

    env: str = "local"
    debug: bool = True
    log_level: str = "INFO"

    db_host: str = "127.0.0.1"
    db_port: int = 5432
    db_name: str = "cohortroles"
    db_user: str = "cohortroles"
    db_password: str = "cohortroles"

    # e.g. sqlite+pysqlite:///./local.db for quick local runs
    database_url_override: str | None = None

    # ---------------------------------------------------------------------
    # Reconciliation policy
    # ---------------------------------------------------------------------

    # Tag written to role_assignments.component for grants owned by the sync.
    grant_component: str = "cohortroles"

    # Mentor never gets the target role over themselves.
    exclude_self_grants: bool = True

    # "system": only system-scope assignments make a mentor.
    # "any": assignments in any scope count (except our own grants).
    marker_role_scope: Literal["system", "any"] = "system"

    # Marker roles that make no sense and would touch every user.
    excluded_marker_role_shortnames: list[str] = ["user", "guest"]

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+psycopg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


settings = Settings()
