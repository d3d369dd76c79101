#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from pathlib import Path

from appdirs import user_log_dir

# Per-run CLI logs. Nothing else is persisted; sessions and credentials never touch disk.
USER_LOG_DIR = Path(user_log_dir("GSAKit", "Cypheriel"))
