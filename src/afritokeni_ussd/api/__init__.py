"""HTTP surface: gateway callback, agent API and health."""
