"""Service settings for entity-time-machine.

Settings use the TIME_MACHINE_ prefix and cover:
- HTTP server binding
- Logging
- Patch recording (excluded fields, guard ops)
- Demo data seeding
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for entity-time-machine.

    Environment variable prefix: TIME_MACHINE_
    List values are read as JSON, e.g. TIME_MACHINE_EXCLUDED_PATHS='["/bag"]'.
    """

    service_name: str = "entity-time-machine"

    # -------------------------------------------------------------------------
    # HTTP server
    # -------------------------------------------------------------------------

    host: str = Field(default="0.0.0.0", description="Interface the HTTP server binds to.")
    port: int = Field(default=8080, description="Port the HTTP server listens on.")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(default="INFO", description="Minimum log level.")
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines instead of the human-readable console format.",
    )

    # -------------------------------------------------------------------------
    # Patch recording
    # -------------------------------------------------------------------------

    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/bag"],
        description="JSON pointers that are never recorded in, or replayed from, the event log. "
        "Every path below an excluded pointer is excluded as well.",
    )
    guard_patches: bool = Field(
        default=False,
        description="Precede every recorded remove/replace with a test op asserting the old value, "
        "so history refuses to replay onto a value that drifted.",
    )
    default_initiator: str = Field(
        default="admin",
        description="Initiator recorded on events when the caller does not supply one.",
    )

    # -------------------------------------------------------------------------
    # Demo data
    # -------------------------------------------------------------------------

    seed_demo_user: bool = Field(
        default=True,
        description="Seed the user store with {id: 1, name: John, age: 16} at startup.",
    )

    model_config = SettingsConfigDict(env_prefix="TIME_MACHINE_")
