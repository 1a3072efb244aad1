from setuptools import setup, find_packages

setup(
    name="DosePower",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "matplotlib",
        "scipy",
    ],
    extras_require={
        "parallel": ["joblib"],
        "progress": ["tqdm"],
        "test": ["pytest", "joblib"],
    },
    author="Paweł Lenartowicz",
    description="Monte Carlo power analysis for dose-trend tests in toxicology studies",
)
