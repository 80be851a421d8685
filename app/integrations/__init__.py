"""app.integrations — outbound HTTP clients.

Outbound calls go through a client in this package, never via bare
``requests`` calls in services or blueprints.

Current clients:
  task_api_client.TaskApiClient — project checklist task endpoints
"""
