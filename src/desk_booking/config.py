from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator

# TransactWriteItems accepts at most 100 actions; one is the desk version bump
MAX_TRANSACTION_BOOKINGS = 99


def _parse_tokens(raw: str) -> dict[str, str]:
    # "token-a=user-1,token-b=user-2"
    tokens: dict[str, str] = {}
    for pair in raw.split(","):
        token, sep, user_id = pair.strip().partition("=")
        if sep and token and user_id:
            tokens[token] = user_id
    return tokens


class Settings(BaseModel):
    storage_backend: Literal["dynamodb", "memory"] = "dynamodb"
    bookings_table_name: str = "bookings"
    desks_table_name: str = "desks"
    display_start_hour: int = Field(default=9, ge=0, le=23)
    display_end_hour: int = Field(default=17, ge=1, le=24)
    max_series_occurrences: int = Field(default=52, ge=1, le=MAX_TRANSACTION_BOOKINGS)
    api_tokens: dict[str, str] = Field(default_factory=dict)
    memory_desk_ids: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_display_hours(self) -> Settings:
        if self.display_start_hour >= self.display_end_hour:
            raise ValueError("display_start_hour must be before display_end_hour")
        return self

    @classmethod
    def from_env(cls) -> Settings:
        env = os.environ
        return cls(
            storage_backend=env.get("STORAGE_BACKEND", "dynamodb"),  # type: ignore[arg-type]
            bookings_table_name=env.get("BOOKINGS_TABLE_NAME", "bookings"),
            desks_table_name=env.get("DESKS_TABLE_NAME", "desks"),
            display_start_hour=int(env.get("DISPLAY_START_HOUR", "9")),
            display_end_hour=int(env.get("DISPLAY_END_HOUR", "17")),
            max_series_occurrences=int(env.get("MAX_SERIES_OCCURRENCES", "52")),
            api_tokens=_parse_tokens(env.get("API_TOKENS", "")),
            memory_desk_ids=[d.strip() for d in env.get("MEMORY_DESK_IDS", "").split(",") if d.strip()],
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
