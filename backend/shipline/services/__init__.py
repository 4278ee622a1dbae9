"""External tool and chat integrations used by pipeline stages."""
