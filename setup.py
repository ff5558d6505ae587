from setuptools import setup, find_packages

setup(
    name="apix-blockchain-common",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "web3>=7.0.0",
        "eth-account>=0.13.0",
        "eth-utils>=4.0.0",
        "eth-abi>=5.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "solana>=0.34.0,<0.40",
        "solders>=0.21.0",
        "base58>=2.1.0",
    ],
    extras_require={
        "hedera": ["hiero-sdk-python>=0.1.0"],
        "test": ["pytest>=7.0.0", "pytest-asyncio>=0.21.0"],
    },
    python_requires=">=3.9",
    author="APIX Team",
    description="Blockchain adapters for Hedera, Ethereum, Solana and Base",
)
