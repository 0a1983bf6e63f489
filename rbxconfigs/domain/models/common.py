"""Defines common Value Objects used across different domain contexts."""

from typing import NewType

# === Core Value Objects ===

UniverseId = NewType("UniverseId", int)        # Roblox experience (universe) ID
FlagKey = NewType("FlagKey", str)              # Key of a single config entry
FilePath = NewType("FilePath", str)            # Path to a local file
ConfigVersion = NewType("ConfigVersion", str)  # Server-side config revision
DraftHash = NewType("DraftHash", str)          # Identifies a staged draft

# === HTTP Context ===
SessionCredential = NewType("SessionCredential", str)  # .ROBLOSECURITY cookie value
CsrfToken = NewType("CsrfToken", str)                  # x-csrf-token value
