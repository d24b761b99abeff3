"""Setup file for development installation."""

from setuptools import setup, find_packages

setup(
    name="ai-chat-console",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "pydantic>=2",
        "structlog",
        "httpx",
        "google-generativeai",
        "opentelemetry-instrumentation-fastapi",
        "prometheus-client",
        "sqlalchemy[asyncio]>=2",
        "aiosqlite",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "ai-chat-console=ai_chat_console.__main__:main",
        ],
    },
)
