"""Core gateway client: connections, endpoints, resilience and observability."""
