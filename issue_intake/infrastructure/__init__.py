"""
Infrastructure Layer
=====================

Clients for the external collaborators:
- llm: OpenAI chat completions and transcription
- tracker: Linear GraphQL API
- storage: S3 attachment uploads
- secrets: AWS Secrets Manager credential lookup
"""
