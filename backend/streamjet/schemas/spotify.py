from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


# Identity proxy requests, discriminated by "action"
class GetClientIdRequest(BaseModel):
    action: Literal["get_client_id"]


class ExchangeCodeRequest(BaseModel):
    action: Literal["exchange_code"]
    code: str
    redirect_uri: str


class RefreshTokenRequest(BaseModel):
    action: Literal["refresh_token"]
    refresh_token: str


class SearchRequest(BaseModel):
    action: Literal["search"]
    query: str
    type: str = "artist"
    access_token: str | None = None
    limit: int = 20


SpotifyAuthRequest = Annotated[
    Union[GetClientIdRequest, ExchangeCodeRequest, RefreshTokenRequest, SearchRequest],
    Field(discriminator="action"),
]


class ClientIdResponse(BaseModel):
    client_id: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int
    token_type: str = "Bearer"
