from pydantic import BaseModel, ConfigDict


class Station(BaseModel):
    """A public radio station as returned by the radio-browser directory."""

    model_config = ConfigDict(extra="ignore")

    stationuuid: str
    name: str
    url: str = ""
    url_resolved: str = ""
    homepage: str = ""
    favicon: str = ""
    country: str = ""
    countrycode: str = ""
    state: str = ""
    language: str = ""
    languagecodes: str = ""
    votes: int = 0
    codec: str = ""
    bitrate: int = 0
    tags: str = ""
    clickcount: int = 0
    clicktrend: int = 0

    @property
    def stream_url(self) -> str:
        """Resolved stream URL, falling back to the nominal one."""
        return self.url_resolved or self.url


class StationRef(BaseModel):
    """The minimal identity of a station used by sessions, presence and reactions."""

    station_uuid: str
    station_name: str


class Country(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    iso_3166_1: str = ""
    stationcount: int = 0


class Tag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    stationcount: int = 0
