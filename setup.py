from setuptools import setup, find_packages

setup(
    name="smooth-limiter",
    version="0.1.0",
    description="Smooth rate limiting with bursty and warmup permit shaping",
    author="adamfilli",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas"
    ],
    extras_require={
        "test": [
            "pytest",
            "matplotlib"
        ]
    },
    include_package_data=True,
    python_requires=">=3.11",
)
