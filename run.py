#!/usr/bin/env python3
"""
Run script for the SSO user service.
This script launches the FastAPI server with the user router mounted.
"""
import uvicorn
import sys
import traceback

from sso_service.config import Settings

if __name__ == "__main__":
    try:
        settings = Settings.from_env()

        # Print information about the server
        print("Starting SSO user service...")
        print(f"Access the API at http://localhost:{settings.port}")
        print(f"API documentation at http://localhost:{settings.port}/docs")

        # Run the server
        uvicorn.run(
            "sso_service.main:app",
            host=settings.host,
            port=settings.port,
            log_level="info"
        )
    except Exception as e:
        print(f"Error starting server: {e}")
        traceback.print_exc()
        sys.exit(1)
