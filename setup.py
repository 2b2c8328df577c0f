from setuptools import setup, find_packages

setup(
    name="medreminder",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "python-dotenv",
        "pydantic",
        "pydantic-settings",
        "celery",
        "kombu",
        "prometheus-client",
        "prometheus-fastapi-instrumentator",
        "boto3",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
)
