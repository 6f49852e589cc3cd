"""Core application components.

This module provides the foundational components for the QuickBooks sync engine:
- Database client creation via Prisma
- Application settings and configuration
- Logging setup shared by the CLI and the HTTP app
"""
