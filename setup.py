"""Setup configuration for xcc"""

from setuptools import setup, find_packages

setup(
    name="xcc",
    version="0.1.0",
    description=(
        "CLI tool for starting Xcode Cloud builds through the App Store "
        "Connect API."
    ),
    author="xcc Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "PyJWT[crypto]>=2.8.0",
        "rich>=13.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "xcc=xcc.main:main",
        ],
    },
)
