"""Connection resilience and cache coordination for a messaging-network bot."""
