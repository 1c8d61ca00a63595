from setuptools import setup, find_packages

setup(
    name="hrnotify",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "sqlalchemy",
        "psycopg2-binary",
        "redis",
        "python-dotenv",
        "pydantic",
        "pydantic-settings",
        "celery",
        "prometheus-client",
        "twilio",
        "phonenumbers",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
