"""Resolver implementations for the GraphQL schema."""
