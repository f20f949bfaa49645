"""
ReviewMate Application Package

This package contains all the core application modules including:
- auth: Session tokens and credential encryption
- automation: Review reply eligibility, prompts, and run orchestration
- db: Supabase client, user records, and automation settings
- services: Google Business Profile and OpenAI integrations
- api: Public JSON API
- worker: Celery app and scheduled automation tasks
- tests: Test suites
"""
