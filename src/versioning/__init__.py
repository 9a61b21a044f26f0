"""Version resolution: models, ordering, multi-source resolver and status calibration."""
