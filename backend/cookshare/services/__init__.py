# Services package init
"""
CookShare Backend — Services Layer
====================================

Service Inventory:
    - authorization:      Pure decision functions (membership, roles,
                          visibility, posting, auto-approval, moderation)
    - membership_store:   Persistence with atomic set operations
    - user_directory:     Read-only user lookup for display enrichment
    - group_service:      Group lifecycle and the membership state machine
    - group_post_service: Group feed, posts, likes and comments

Dependencies point downward only:
    routes → group_service / group_post_service
           → authorization (decide) + membership_store / user_directory (I/O)
"""
