#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
"""Command-line interface for GSAKit."""
