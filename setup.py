from setuptools import setup, find_packages

setup(
    name="catalog-extractor",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "PyMuPDF>=1.23.0",
        "pdfplumber>=0.10.0",
        "openai>=1.3.0",
        "click>=8.1.0",
        "python-dotenv>=1.0.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=4.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "catalog-extract=catalog_extractor.cli:main",
        ],
    },
)
