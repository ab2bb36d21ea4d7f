"""Notification dispatch module.

Layers:
- domain: Notification, DeliveryLog and Template models, status lifecycle, errors
- tables / store / delivery_log / templates: SQLAlchemy persistence
- idempotency: Request deduplication guard
- service: Application boundary used by the API
- worker: Single delivery attempt orchestration
- controllers / schemas: HTTP surface
"""
