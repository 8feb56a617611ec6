"""GraphQL API for the Sick Fits storefront."""
