"""Service layer: request gates, ticket rules, accounts and notifications."""
