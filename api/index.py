"""
Vercel entry point for the Issue Intake API
"""
import sys
import os

# Add parent directory to path
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("ROUTING_RULES_PATH", "/tmp/routing_rules.yaml")

from mangum import Mangum
from issue_intake.main import app

# Lambda handler for ASGI app; lifespan wires the pipeline on cold start
handler = Mangum(app, lifespan="auto")
