"""Settings, presets and the hash manifest."""
