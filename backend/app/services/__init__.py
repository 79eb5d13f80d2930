# Services package init
"""
Wayfarer Backend — Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
Why:   Routes handle HTTP; services own the document rules and the read scope.
How:   Services accept a session plus the decoded body or cleaned query and
       return JSON-ready dicts. Module-level singletons are imported by routes.

Service Inventory:
    - TourService: tour CRUD, document hooks, secret-tour read scope
    - UserService: user CRUD, cleanup of guide links and reviews on delete
    - ReviewService: review CRUD and the tour rating aggregate
    - QueryFeatures: filter/sort/project/paginate shared by list endpoints
"""
