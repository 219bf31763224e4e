"""Loot system: catalog, reward roller, location policy and bonuses."""
