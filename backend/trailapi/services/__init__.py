# Services package init
"""
Trail API Backend — Services Layer
===================================

What:  Business logic between the routes (HTTP) and the entity store.
Why:   Routes handle HTTP; services own authorization, validation and the
       relationship invariants, and can be tested without a server.

Service Inventory:
    - EntityStore (abstract): document-store contract + cursor codec
    - SQLEntityStore / InMemoryEntityStore: the two store adapters
    - IdentityVerifier / GoogleIdentityVerifier: bearer token → claim
    - GoogleOAuthClient: authorization code → ID token
    - EntityService: descriptor-driven CRUD
    - RelationshipService: Trail ↔ Trailhead edges and delete cascade
    - Paginator: cursor pages with counts and links
    - UserService: sign-in registration of Users
"""
