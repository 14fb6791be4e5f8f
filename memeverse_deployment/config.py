import os
from pathlib import Path
from typing import Dict, Iterable, Mapping, NamedTuple, Optional

from dotenv import dotenv_values
from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from memeverse_deployment.constants import DOTENV_FILENAME, FACTORY_ENVVAR


class MissingEnvironmentValue(ValueError):
    """Raised when required environment values are absent or empty."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(f"Missing required environment value(s): {', '.join(self.names)}")


class InvalidEnvironmentValue(ValueError):
    """Raised when an environment value is set but malformed."""


class EnvironmentConfig(NamedTuple):
    """
    Snapshot of the process environment taken once at startup.

    Values from a .env file are overridden by the real environment.
    """

    factory: ChecksumAddress
    values: Mapping[str, str]

    @classmethod
    def load(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> "EnvironmentConfig":
        environ = os.environ if environ is None else environ
        values: Dict[str, str] = dict()
        dotenv_path = dotenv_path or Path.cwd() / DOTENV_FILENAME
        if dotenv_path.exists():
            values.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
        values.update(environ)

        factory = values.get(FACTORY_ENVVAR)
        if not factory:
            raise MissingEnvironmentValue([FACTORY_ENVVAR])
        if not is_address(factory):
            raise InvalidEnvironmentValue(f"{FACTORY_ENVVAR} is not a valid address: '{factory}'")
        return cls(factory=to_checksum_address(factory), values=values)

    def require(self, *names: str) -> None:
        """Eagerly checks that all of the given names are set."""
        missing = [name for name in names if not self.values.get(name)]
        if missing:
            raise MissingEnvironmentValue(missing)

    def get(self, name: str) -> str:
        value = self.values.get(name)
        if not value:
            raise MissingEnvironmentValue([name])
        return value
