"""Connection and scoping settings for the CLI."""

from pydantic import BaseModel, Field


class CLIConfig(BaseModel):
    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=8080, description="Server port")
    api_path: str = Field(default="/api/v1/chat", description="Chat endpoint path")
    user_id: str | None = Field(
        default=None, description="User id sent with every message"
    )
    site_id: int | None = Field(
        default=None, description="Limit the assistant's risk data to one site"
    )
    service_id: int | None = Field(
        default=None, description="Limit the assistant's risk data to one service"
    )

    @property
    def chat_url(self) -> str:
        return f"http://{self.host}:{self.port}{self.api_path}"

    def scope_fields(self) -> dict[str, str | int]:
        """Optional request fields, camelCased for the API."""
        fields: dict[str, str | int] = {}
        if self.user_id:
            fields["userId"] = self.user_id
        if self.site_id is not None:
            fields["siteId"] = self.site_id
        if self.service_id is not None:
            fields["serviceId"] = self.service_id
        return fields
