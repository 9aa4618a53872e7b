# setup.py
from setuptools import setup, find_packages

setup(
    name="contact_scout",
    version="0.1.0",
    description="Асинхронный сборщик контактных данных сайтов ContactScout",
    packages=find_packages(include=["contact_scout", "contact_scout.*"]),
    package_data={"contact_scout.report": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "lxml>=5.0",
        "markdownify>=0.13",
        "playwright>=1.48",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "contact-scout=contact_scout.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
