from setuptools import setup, find_packages

setup(
    name="keepy",
    version="0.1.0",
    description="Personal organizer for social-media profiles and website links",
    author="Keepy Contributors",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"keepy": ["default_config.yaml"]},
    python_requires=">=3.8",
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "keepy=keepy.cli:main",
        ]
    },
)
