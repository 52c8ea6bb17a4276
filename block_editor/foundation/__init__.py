"""Low-level helpers (config file loading, logging) with no blockkit dependency."""
