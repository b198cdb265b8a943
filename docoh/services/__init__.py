"""Document lifecycle services and storage adapters."""
