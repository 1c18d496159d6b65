# Services package init
"""
Notely Backend - Services Layer
=================================

Service Inventory:
    - IdentityProvider (abstract): sign-in provider contract
    - GoogleOAuthClient: Google authorization-code flow over httpx
    - UserDirectory: Google subject → local User (atomic insert-if-absent)
    - SessionStore: durable opaque session handles with fixed expiry
    - resolve_user (auth_gate): cookie → session → user lookup
    - NoteService: owner-scoped list/add/remove
"""
