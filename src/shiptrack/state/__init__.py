"""State/store layer.

This package owns everything the tracker persists or remembers between
calls: location history, monthly usage, SIM registrations and refresh
cooldowns. Provider adapters never write here directly.
"""
