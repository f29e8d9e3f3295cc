"""Store adapters implementing the Repository protocol."""
