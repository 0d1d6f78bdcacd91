# setup.py
from setuptools import find_namespace_packages, setup

setup(
    name="VoxelTerrain",
    version="0.1.0",
    packages=find_namespace_packages(include=["engine*", "world*", "render*"]),
    python_requires=">=3.9",
    install_requires=[
        "panda3d",
        "numpy",
        "opensimplex>=0.4",
    ],
    extras_require={
        "test": ["pytest"],
    },
    options = {
        "build_apps": {
            "console_apps": {"BenchWorldGen": "tools/bench_world_gen.py"},
            "include_patterns": ["engine/**","world/**","render/**","config/**"],
            "exclude_patterns": ["**/__pycache__/**","**/*.pyc"],
            "plugins": ["pandagl"],
            "platforms": ["manylinux2014_x86_64","win_amd64","macosx_11_0_arm64"],
            "log_filename": None,
        }
    }
)
