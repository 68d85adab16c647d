#!/usr/bin/env python3
"""Example of mapping domain records onto DTOs with an explicit configuration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Annotated

from flexmap import MapTo, MappingConfiguration, ObjectMapper, create_default_configuration


@dataclass
class Address:
    street: str = ""
    city: str = ""


@dataclass
class AddressDto:
    street: str = ""
    city: str = ""


@dataclass
class UserRecord:
    id: int = 0
    username: Annotated[str, MapTo("login")] = ""
    password_hash: str = ""
    joined: date | None = None
    active: bool = True
    address: Address | None = None
    friends: list[UserRecord] = field(default_factory=list)


@dataclass
class UserDto:
    id: str = ""
    login: str = ""
    password_hash: str = ""
    joined: str = "unknown"
    active: str = ""
    address: AddressDto | None = None
    friends: tuple[UserDto, ...] = ()


async def _lookup_region(city: str) -> str:
    await asyncio.sleep(0)
    return f"{city.title()} (EU)"


def build_config() -> MappingConfiguration:
    """Configuration validated by ``flexmap validate examples/user_mapping_example.py:build_config``."""
    return (
        create_default_configuration()
        .for_types(UserRecord, UserDto)
        .convert_property("id", lambda value: f"U{value:05d}")
        .exclude_property("password_hash")
        .set_default_value("joined", "never")
        .for_types(Address, AddressDto)
        .transform_property("city", str.strip)
        .transform_property_async("city", _lookup_region)
        .reset()
    )


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = build_config()
    config.validate()

    ada = UserRecord(
        id=7,
        username="ada",
        password_hash="x",
        joined=date(2024, 5, 1),
        address=Address("Main St", "springfield"),
    )
    bob = UserRecord(id=8, username="bob", friends=[ada])
    ada.friends.append(bob)

    mapper = ObjectMapper(config)
    dto = await mapper.map_async(ada, UserDto)
    print(dto)

    dtos = await mapper.map_collection_async([ada, None, bob], UserDto)
    print([item.login for item in dtos])


if __name__ == "__main__":
    asyncio.run(main())
