from setuptools import setup, find_packages

setup(
    name="cloud_function_exporter",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "examples"]),
    python_requires=">=3.8",
    description="Prometheus exporter republishing metrics returned by Google Cloud Functions",
    install_requires=[
        "prometheus-client>=0.17",
        "google-cloud-functions>=1.13",
        "google-api-core>=2.11",
        "google-auth>=2.20",
        "requests>=2.28",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "cloud-function-exporter=cloud_function_exporter.__main__:main",
        ],
    },
)
