"""
Project Checklist
Blueprint registry.

    tasks_bp   /api/v1/projects/<pid>/tasks...   task CRUD + template seeding
    health_bp  /api/v1/health/...                readiness / liveness probes
"""
