"""Island game state, ledger, crafting and the action orchestrator."""
