"""Repository layer for the connection timeline engine.

Provides CRUD and query methods:
- connections: get_by_id, exists
- timeline: create_initial_timeline, get_timeline_stages, get_stage,
            get_max_stage_order, create_stage, update_stage, get_settings,
            update_settings, get_expired_response_stages
"""
