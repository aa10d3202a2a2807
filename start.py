#!/usr/bin/env python3
"""
Development startup script for the Test Case Generation API
"""

import sys
import shutil
from pathlib import Path


def main():
    """Main startup function"""
    print("🚀 Starting Test Case Generation API...")

    env_file = Path(".env")
    if not env_file.exists():
        print("⚠️  .env file not found. Creating from .env.example...")
        if Path(".env.example").exists():
            shutil.copy(".env.example", ".env")
            print("✅ .env file created. Please configure Jira and GitHub credentials.")
        else:
            print("❌ .env.example not found!")
            sys.exit(1)

    if not hasattr(sys, 'real_prefix') and not (hasattr(sys, 'base_prefix') and sys.base_prefix != sys.prefix):
        print("⚠️  Virtual environment not detected. Consider using venv or conda.")

    Path("data").mkdir(exist_ok=True)

    from testgen.config.settings import settings

    base = f"http://localhost:{settings.api_port}{settings.api_prefix}"
    print("🌟 Starting FastAPI server...")
    print(f"📚 API Documentation: {base}/docs")
    print(f"🏥 Health Check: {base}/health")
    print(f"🤖 Ollama: {settings.ollama_base_url} ({settings.ollama_coder_model})")
    print("🔄 Use Ctrl+C to stop the server")

    try:
        import uvicorn
        uvicorn.run(
            "main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=True,
            log_level=settings.log_level.lower()
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
