from setuptools import setup, find_packages

setup(
    name="vicon_inertial_sim",
    version="0.1.0",
    description="Vicon-inertial simulator: IMU, camera trigger and VICON measurements from an SE(3) B-spline trajectory",
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    python_requires=">=3.8",
    entry_points={
        'console_scripts': [
            'vicon_inertial_sim = vicon_inertial_sim.cli:main',
        ],
    },
    install_requires=[
        "numpy",
        "scipy",
        "PyYAML",
    ],
    extras_require={
        "dev": [
            "pytest",
            "flake8",
            "black",
        ]
    }
)
