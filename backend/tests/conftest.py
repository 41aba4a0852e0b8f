import pytest

from genochain.core.config import EncryptionConfig, ProofConfig
from genochain.storage.encryption import EncryptionManager


@pytest.fixture
def encryption_config():
    return EncryptionConfig.for_environment("testing")


@pytest.fixture
def manager(encryption_config):
    return EncryptionManager(encryption_config)


@pytest.fixture
def proof_config():
    return ProofConfig()


@pytest.fixture
def brca1_dataset():
    return {
        "variants": [
            {"chromosome": "17", "position": 43044295, "type": "SNP", "gene": "BRCA1"},
        ],
        "genes": [{"symbol": "BRCA1"}],
    }


@pytest.fixture
def rich_dataset():
    return {
        "variants": [
            {
                "chromosome": "17",
                "position": 43044295,
                "reference": "A",
                "alternate": "G",
                "type": "SNP",
                "gene": "BRCA1",
                "rsId": "rs80357906",
                "quality": 60.0,
                "individualId": "P-001",
                "exactPosition": 43044295,
            },
            {
                "chromosome": "13",
                "position": 32315474,
                "reference": "AT",
                "alternate": "A",
                "gene": "BRCA2",
                "quality": 40.0,
                "sequence": "ATATAT",
            },
            {
                "chromosome": "7",
                "position": 117559590,
                "type": "INDEL",
                "gene": "CFTR",
            },
        ],
        "genes": [
            {"symbol": "BRCA1", "name": "BRCA1 DNA repair associated", "chromosome": "17", "start": 43044295},
            {"symbol": "TP53", "name": "tumor protein p53", "chromosome": "17"},
        ],
        "sequences": [
            {
                "id": "seq-1",
                "sequence": "ACGTACGT",
                "annotations": [{"gene": "APOE"}],
                "variants": [{"chromosome": "19", "position": 44908684, "type": "SNP", "gene": "APOE"}],
            },
        ],
        "phenotypes": [{"trait": "eye_color", "value": "brown"}],
        "metadata": {"source": "clinic-a"},
    }
