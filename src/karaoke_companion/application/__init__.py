"""
Application Layer

Contains application services and the ports they depend on.
This layer orchestrates domain objects and infrastructure to fulfill use cases.

Structure:
- services/: Queue navigation, session identity, auth gate and hosted-session lifecycle
- interfaces/: Port interfaces for infrastructure adapters
"""
