"""Concrete CredentialProvider implementations."""

import logging
import plistlib
import sys
from pathlib import Path
from typing import List, Optional

import keyring
from keyring.errors import KeyringError

from rbxconfigs.domain.exceptions import CredentialError
from rbxconfigs.domain.interfaces.credentials import CredentialProvider
from rbxconfigs.domain.models.common import SessionCredential
from rbxconfigs.infrastructure.config.settings import get_cookie

logger = logging.getLogger(__name__)


class StaticCredentialProvider(CredentialProvider):
    """Wraps a credential that is already known (e.g. passed on the command line)."""

    def __init__(self, credential: str):
        if not credential:
            raise CredentialError("Session credential must not be empty.")
        self._credential = SessionCredential(credential)

    def get_credential(self) -> SessionCredential:
        return self._credential


class ConfigCredentialProvider(CredentialProvider):
    """Reads RBX_COOKIE from the environment, .env or the YAML config."""

    def get_credential(self) -> SessionCredential:
        cookie: Optional[str] = get_cookie()
        if not cookie:
            raise CredentialError(
                "No Roblox session cookie configured. Set RBX_COOKIE in the environment, "
                "a .env file or ~/.rbxconfigs/config.yaml."
            )
        logger.debug("Loaded session credential from configuration.")
        return SessionCredential(cookie)


# Windows Credential Manager targets written by Roblox Studio
STUDIO_CREDENTIAL_HOST = "https://www.roblox.com"
STUDIO_USER_ID_TARGET = f"{STUDIO_CREDENTIAL_HOST}:RobloxStudioAuthuserid"
STUDIO_COOKIE_TARGET = f"{STUDIO_CREDENTIAL_HOST}:RobloxStudioAuth.ROBLOSECURITY{{user_id}}"

# Legacy stores; their value is a record like "SEC::<YES>,EXP::<...>,COOK::<cookie>"
STUDIO_REGISTRY_KEY = r"Software\Roblox\RobloxStudioBrowser\roblox.com"
STUDIO_PLIST_PATH = Path.home() / "Library" / "Preferences" / "com.roblox.RobloxStudioBrowser.plist"
STUDIO_PLIST_DOMAIN = "roblox.com"
STUDIO_COOKIE_NAME = ".ROBLOSECURITY"


def parse_studio_cookie_record(record: Optional[str]) -> Optional[str]:
    """Extracts the cookie from a Studio cookie record.

    Returns None if the record has no ``COOK::`` field.
    """
    if not record:
        return None
    for part in record.split(","):
        name, separator, value = part.partition("::")
        if separator and name.strip() == "COOK":
            cookie = value.strip().strip("<>")
            return cookie or None
    return None


def decode_studio_blob(value: str) -> str:
    """Recovers a UTF-8 credential blob that keyring decoded as UTF-16."""
    if value.isascii():
        return value
    try:
        return value.encode("utf-16-le").decode("utf-8")
    except UnicodeError:
        return value


class StudioCredentialProvider(CredentialProvider):
    """Reads the session cookie Roblox Studio stored for its logged-in user.

    On Windows the Credential Manager is tried first, then the registry
    entry older Studio versions wrote. On macOS the Studio browser plist
    is read. Other platforms have no Studio store.
    """

    def __init__(self, platform: Optional[str] = None, plist_path: Path = STUDIO_PLIST_PATH):
        self.platform = platform or sys.platform
        self.plist_path = plist_path

    def get_credential(self) -> SessionCredential:
        cookie: Optional[str] = None
        if self.platform == "win32":
            cookie = self._read_credential_manager() or self._read_registry()
        elif self.platform == "darwin":
            cookie = self._read_plist()
        else:
            logger.debug(f"No Roblox Studio cookie store on platform {self.platform}")

        if not cookie:
            raise CredentialError("No Roblox Studio login found. Log in to Roblox Studio or set RBX_COOKIE.")
        logger.debug("Loaded session credential from Roblox Studio.")
        return SessionCredential(cookie)

    def _read_credential_manager(self) -> Optional[str]:
        try:
            user = keyring.get_credential(STUDIO_USER_ID_TARGET, None)
            if user is None or not user.password:
                return None
            user_id = decode_studio_blob(user.password)
            cookie = keyring.get_credential(STUDIO_COOKIE_TARGET.format(user_id=user_id), None)
        except (KeyringError, UnicodeDecodeError) as e:
            logger.debug(f"Windows Credential Manager unavailable: {e}")
            return None
        if cookie is None or not cookie.password:
            return None
        return decode_studio_blob(cookie.password)

    def _read_registry(self) -> Optional[str]:
        import winreg  # Windows only

        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, STUDIO_REGISTRY_KEY) as key:
                record, _ = winreg.QueryValueEx(key, STUDIO_COOKIE_NAME)
        except OSError as e:
            logger.debug(f"No Roblox Studio cookie in the registry: {e}")
            return None
        return parse_studio_cookie_record(record)

    def _read_plist(self) -> Optional[str]:
        try:
            with open(self.plist_path, "rb") as f:
                preferences = plistlib.load(f)
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read {self.plist_path}: {e}")
            return None
        domain = preferences.get(STUDIO_PLIST_DOMAIN)
        if not isinstance(domain, dict):
            return None
        return parse_studio_cookie_record(domain.get(STUDIO_COOKIE_NAME))


class ChainedCredentialProvider(CredentialProvider):
    """Returns the credential of the first provider that has one."""

    def __init__(self, providers: List[CredentialProvider]):
        if not providers:
            raise ValueError("At least one credential provider is required.")
        self.providers = providers

    def get_credential(self) -> SessionCredential:
        failures: List[str] = []
        for provider in self.providers:
            try:
                return provider.get_credential()
            except CredentialError as e:
                logger.debug(f"{type(provider).__name__} has no credential: {e}")
                failures.append(str(e))
        raise CredentialError(" ".join(failures))
