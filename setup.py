from setuptools import setup, find_packages

setup(
    name="simclock",
    version="0.1.0",
    description="Discrete-event simulation clock with events, conditions, samplers and processes",
    packages=find_packages(include=["simclock", "simclock.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.10",
)
