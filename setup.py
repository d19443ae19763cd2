from pathlib import Path
from setuptools import find_packages, setup


def read_requirements() -> list[str]:
    req_path = Path(__file__).parent / "requirements.txt"
    if not req_path.exists():
        return []
    return [line.strip() for line in req_path.read_text(encoding="utf-8").splitlines() if line.strip() and not line.startswith("#")]


setup(
    name="compliance-agent",
    version="0.1.0",
    description="Rule-based compliance checks and AI risk scoring for IT Park resident companies",
    packages=find_packages(include=["compliance_agent", "compliance_agent.*"]),
    install_requires=read_requirements(),
    extras_require={"test": ["pytest", "httpx"]},
    python_requires=">=3.10",
    include_package_data=True,
)
