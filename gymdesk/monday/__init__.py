"""monday.com board integration: GraphQL client, column mappings and the sync manager."""
