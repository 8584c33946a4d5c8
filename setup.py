from setuptools import setup, find_packages

setup(
    name="sipwatch",
    version="0.1.0",
    description="Live SIP message capture with TCP stream reassembly",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "click>=8.0.0",
        "scapy>=2.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sipwatch=sipwatch_cli.main:cli",
        ],
    },
    include_package_data=True,
    python_requires=">=3.8",
)
