from pydantic import BaseModel, Field


class OpenAIKeyRequest(BaseModel):
    api_key: str = Field(min_length=1)


class OpenAIKeyStatus(BaseModel):
    configured: bool
