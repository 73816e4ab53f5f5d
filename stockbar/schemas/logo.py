from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class DomainLogoRequest(BaseModel):
    """Sources are URL prefixes completed with the company domain."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["domain"] = "domain"
    domain: str
    sources: tuple[str, ...] = ()

    def candidate_urls(self) -> list[str]:
        urls: list[str] = []
        for source in self.sources:
            # duckduckgo serves favicons as <domain>.ico
            if "duckduckgo" in source:
                urls.append(f"{source}{self.domain}.ico")
            else:
                urls.append(f"{source}{self.domain}")
        return urls


class DirectLogoRequest(BaseModel):
    """Sources are complete image URLs, used verbatim."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["direct"] = "direct"
    sources: tuple[str, ...] = ()

    def candidate_urls(self) -> list[str]:
        return list(self.sources)


LogoRequest = Annotated[Union[DomainLogoRequest, DirectLogoRequest], Field(discriminator="kind")]


class LogoHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    path: Path
