"""Chain adapters — the only layer that talks to Tron nodes."""
