from setuptools import setup, find_packages

setup(
    name="crm-security-core",
    version="1.0.0",
    description="CRM trust and security layer: sanitization, tokens, secure storage and monitoring",
    author="jetgause",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic[email]>=2.0.0",
        "python-jose[cryptography]>=3.3.0",
        "bcrypt>=4.0.0",
        "cryptography>=41.0.0",
        "bleach>=6.0.0",
        "python-dotenv>=1.0.0",
        "fastapi>=0.104.0",
        "uvicorn>=0.24.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "crm-security-diagnostics=crm_security.diagnostics:run",
        ],
    },
    python_requires=">=3.9",
)
