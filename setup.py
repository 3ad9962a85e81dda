"""
Task Guardian setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="taskguardian",
    version="0.1.0",
    description="Task Guardian — task management API with role-based assignment",
    packages=find_packages(include=["taskguardian", "taskguardian.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "taskguardian=taskguardian.cli:main",
        ],
    },
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "sqlalchemy>=2.0",
        "pydantic>=2.5",
        "bcrypt>=4.1",
        "PyJWT>=2.8",
        "pyyaml>=6.0",
    ],
    extras_require={
        "postgres": ["psycopg2-binary>=2.9"],
        "test": ["pytest>=8.0", "httpx>=0.27"],
    },
)
