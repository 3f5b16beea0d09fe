from setuptools import setup, find_packages

setup(
    name="wnba-prop-projector",
    version="0.1.0",
    description="Statistical projection engine for WNBA player props",
    author="Ben Rosen",
    packages=find_packages(include=["wnba_projector", "wnba_projector.*"]),
    install_requires=[
        "numpy>=1.22.4",
        "pandas>=1.5.3",
        "scipy>=1.10.0",
        "scikit-learn>=1.3.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "wnba-projector=wnba_projector.main:main",
        ],
    },
)
