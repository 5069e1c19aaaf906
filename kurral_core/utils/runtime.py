# Copyright (C) 2025 Ivan Bondarenko
#
# This file is part of Kurral Engine.
#
# Kurral Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

import os


def is_local_run() -> bool:
    """
    Best-effort detection of local/dev runs without extra configuration.
    Emulator flags win because they are already part of the local setup.
    """
    if os.getenv("FIRESTORE_EMULATOR_HOST"):
        return True
    if os.getenv("FUNCTIONS_EMULATOR"):
        return True

    env = (os.getenv("KURRAL_ENV") or os.getenv("ENV") or "").strip().lower()
    return env in ("local", "dev", "development")
