#!/usr/bin/env python3
"""
Simple script to run the Operations Intelligence API server on demo data.
"""

import uvicorn
from ops_intelligence.api.main import create_app
from ops_intelligence.config import EngineConfig, configure_logging
from ops_intelligence.context import EngineContext
from ops_intelligence.demo import build_demo_store

if __name__ == "__main__":
    configure_logging('INFO')
    print("Starting Operations Intelligence API...")
    print("API will be available at: http://localhost:8000")
    print("Interactive docs at: http://localhost:8000/docs")

    context = EngineContext.create(build_demo_store(), EngineConfig())
    uvicorn.run(
        create_app(context),
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
