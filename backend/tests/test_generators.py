import pytest

from genochain.core.crypto.commitment import CommitmentScheme
from genochain.core.errors import ClaimNotSatisfiedError, InvalidDataError
from genochain.core.proofs.generators import (
    AggregateProofGenerator,
    GeneAbsenceProofGenerator,
    GenePresenceProofGenerator,
    GeneVariantProofGenerator,
)
from genochain.core.proofs.parameters import ProofParameters
from genochain.schemas.claims import GenePresenceClaim
from genochain.schemas.genomic import GeneticDataset
from genochain.schemas.proof import ProofKind

NONCE = b"\x42" * 32


def _extras(record):
    return ProofParameters.from_bytes(record.parameter_block).extras

# ═══════════════════════════════════════════════════════════════════════════════
# GENE PRESENCE TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_presence_record_shape(proof_config, brca1_dataset):
    record = GenePresenceProofGenerator(proof_config).generate(brca1_dataset, {"targetGene": "BRCA1"})
    assert record.proof_kind == ProofKind.GENE_PRESENCE
    assert len(record.commitment_hash) == 32
    assert len(record.parameter_block) == 256
    assert record.metadata["algorithm"] == "simplified-zk-snark"
    assert record.metadata["version"] == "1.0.0"
    assert record.metadata["privacyLevel"] == "high"
    assert record.metadata["targetGene"] == "BRCA1"
    assert record.metadata["confidence"] == 1.0


@pytest.mark.parametrize("gene, confidence", [("BRCA1", 1.0), ("BRCA2", 0.9), ("APOE", 0.8)])
def test_presence_confidence_by_source(proof_config, rich_dataset, gene, confidence):
    record = GenePresenceProofGenerator(proof_config).generate(rich_dataset, gene)
    assert record.metadata["confidence"] == confidence


def test_presence_matches_gene_name(proof_config, rich_dataset):
    record = GenePresenceProofGenerator(proof_config).generate(rich_dataset, "tumor protein p53")
    assert record.metadata["confidence"] == 1.0


def test_presence_refuses_missing_gene(proof_config, rich_dataset):
    with pytest.raises(ClaimNotSatisfiedError):
        GenePresenceProofGenerator(proof_config).generate(rich_dataset, "NOPE1")


def test_presence_needs_a_searchable_collection(proof_config):
    with pytest.raises(InvalidDataError):
        GenePresenceProofGenerator(proof_config).generate({"phenotypes": [{"trait": "height"}]}, "BRCA1")


def test_presence_rejects_bad_claims(proof_config, brca1_dataset):
    generator = GenePresenceProofGenerator(proof_config)
    with pytest.raises(InvalidDataError):
        generator.generate(brca1_dataset, {"targetGene": ""})
    with pytest.raises(InvalidDataError):
        generator.generate(brca1_dataset, 42)
    with pytest.raises(InvalidDataError):
        generator.generate(brca1_dataset, {"kind": "gene_absence", "targetGene": "BRCA1"})

# ═══════════════════════════════════════════════════════════════════════════════
# GENE ABSENCE TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_absence_of_unknown_gene(proof_config, rich_dataset):
    record = GeneAbsenceProofGenerator(proof_config).generate(rich_dataset, {"targetGene": "HTT"})
    assert record.proof_kind == ProofKind.GENE_ABSENCE
    assert record.metadata["algorithm"] == "simplified-zk-snark-absence"
    assert record.metadata["recordsScanned"] == 2 + 3 + 1


@pytest.mark.parametrize("gene", ["BRCA1", "CFTR", "APOE"])
def test_absence_refused_when_gene_present(proof_config, rich_dataset, gene):
    with pytest.raises(ClaimNotSatisfiedError):
        GeneAbsenceProofGenerator(proof_config).generate(rich_dataset, gene)

# ═══════════════════════════════════════════════════════════════════════════════
# GENE VARIANT TESTS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("claim, confidence", [
    ({"gene": "BRCA1", "type": "SNP", "rsId": "rs80357906"}, 1.0),
    ({"gene": "BRCA1", "type": "snp", "position": 43044295, "allele": "G"}, 0.95),
    ({"gene": "BRCA1", "type": "SNP", "position": 43044295}, 0.8),
    ({"gene": "BRCA1", "type": "SNP", "chromosome": 17, "positionRange": {"start": 43000000, "end": 43100000}}, 0.7),
    ({"gene": "BRCA1", "type": "SNP"}, 0.6),
    ({"gene": "APOE", "type": "SNP"}, 0.6),
])
def test_variant_match_confidence(proof_config, rich_dataset, claim, confidence):
    record = GeneVariantProofGenerator(proof_config).generate(rich_dataset, claim)
    assert record.metadata["confidence"] == confidence
    assert record.metadata["targetVariant"]["gene"] == claim["gene"]
    assert _extras(record)["variantType"] == "SNP"
    assert _extras(record)["options"]["confidenceThreshold"] == 0.8


@pytest.mark.parametrize("claim", [
    {"gene": "BRCA1", "type": "SNP", "rsId": "rs1"},
    {"gene": "BRCA1", "type": "SNP", "position": 1},
    {"gene": "BRCA1", "type": "SNP", "allele": "T"},
    {"gene": "BRCA1", "type": "SNP", "chromosome": "X"},
    {"gene": "BRCA1", "type": "INDEL"},
    {"gene": "MYC", "type": "SNP"},
])
def test_contradicting_variant_is_not_evidence(proof_config, rich_dataset, claim):
    with pytest.raises(ClaimNotSatisfiedError):
        GeneVariantProofGenerator(proof_config).generate(rich_dataset, claim)


def test_variant_refused_on_empty_variant_list(proof_config):
    with pytest.raises(ClaimNotSatisfiedError):
        GeneVariantProofGenerator(proof_config).generate({"variants": []}, {"gene": "BRCA1", "type": "SNP"})


def test_variant_claim_type_must_be_claimable(proof_config, rich_dataset):
    with pytest.raises(InvalidDataError):
        GeneVariantProofGenerator(proof_config).generate(rich_dataset, {"gene": "BRCA2", "type": "DELETION"})


def test_variant_found_in_vcf_list(proof_config):
    dataset = {"vcf": [{"chromosome": "1", "position": 11856378, "type": "SNP", "gene": "MTHFR"}]}
    record = GeneVariantProofGenerator(proof_config).generate(
        dataset, {"gene": "MTHFR", "type": "SNP", "position": 11856378}
    )
    assert record.metadata["confidence"] == 0.8


def test_generate_multi_skips_or_aborts(proof_config, rich_dataset):
    generator = GeneVariantProofGenerator(proof_config)
    claims = [{"gene": "BRCA1", "type": "SNP"}, {"gene": "MYC", "type": "SNP"}, {"gene": "CFTR", "type": "INDEL"}]
    records = generator.generate_multi(rich_dataset, claims)
    assert [r.metadata["targetVariant"]["gene"] for r in records] == ["BRCA1", "CFTR"]
    with pytest.raises(ClaimNotSatisfiedError):
        generator.generate_multi(rich_dataset, claims, strict=True)

# ═══════════════════════════════════════════════════════════════════════════════
# AGGREGATE TESTS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.parametrize("claim, result", [
    ({"queryType": "variant_count", "statistic": "count"}, 3),
    ({"queryType": "variant_count", "statistic": "count", "filters": {"gene": "BRCA1"}}, 1),
    ({"queryType": "variant_count", "statistic": "percentage", "filters": {"gene": "BRCA1"}}, 33),
    ({"queryType": "variant_count", "statistic": "ratio", "filters": {"gene": "BRCA1"}}, 0.333333),
    ({"queryType": "variant_count", "statistic": "range", "range": {"min": 2, "max": 5}}, 1),
    ({"queryType": "variant_count", "statistic": "below_threshold", "threshold": 3}, 0),
    ({"type": "gene_presence_count", "statistic": "count", "targetGenes": ["BRCA1", "TP53", "BRCA1", "HTT"]}, 2),
    ({"queryType": "gene_presence_count", "statistic": "percentage", "targetGenes": ["BRCA1", "TP53", "HTT"]}, 67),
    ({"queryType": "diversity_index", "statistic": "count"}, 1),
    ({"queryType": "diversity_index", "statistic": "above_threshold", "threshold": 1.5}, 1),
    ({"queryType": "population_frequency", "statistic": "ratio", "targetVariant": {"rsId": "rs80357906"}}, 0.1),
    ({"queryType": "population_frequency", "statistic": "above_threshold", "threshold": 0.05,
      "targetVariant": {"gene": "HTT"}}, 0),
])
def test_aggregate_statistics(proof_config, rich_dataset, claim, result):
    record = AggregateProofGenerator(proof_config).generate(rich_dataset, claim)
    extras = _extras(record)
    assert extras["result"] == result
    assert extras["dataSize"] == 6
    assert extras["statisticType"] == claim["statistic"]
    assert record.metadata["result"] == result
    assert record.metadata["confidence"] == 0.95


def test_percentage_of_single_variant(proof_config, brca1_dataset):
    record = AggregateProofGenerator(proof_config).generate(
        brca1_dataset, {"queryType": "variant_count", "statistic": "percentage"}
    )
    assert _extras(record)["result"] == 100


def test_percentage_rounds_half_up(proof_config):
    variants = [{"gene": "A"}] + [{"gene": "B"}] * 7
    record = AggregateProofGenerator(proof_config).generate(
        {"variants": variants},
        {"queryType": "variant_count", "statistic": "percentage", "filters": {"gene": "A"}},
    )
    # 1/8 = 12.5%
    assert _extras(record)["result"] == 13


def test_aggregate_refuses_empty_dataset(proof_config):
    with pytest.raises(ClaimNotSatisfiedError):
        AggregateProofGenerator(proof_config).generate(
            {"metadata": {"source": "clinic"}}, {"queryType": "variant_count", "statistic": "count"}
        )


@pytest.mark.parametrize("claim", [
    {"queryType": "variant_count", "statistic": "above_threshold"},
    {"queryType": "variant_count", "statistic": "range"},
    {"queryType": "gene_presence_count", "statistic": "count"},
    {"queryType": "population_frequency", "statistic": "count"},
    {"queryType": "median", "statistic": "count"},
])
def test_aggregate_claim_needs_its_inputs(proof_config, rich_dataset, claim):
    with pytest.raises(InvalidDataError):
        AggregateProofGenerator(proof_config).generate(rich_dataset, claim)

# ═══════════════════════════════════════════════════════════════════════════════
# SHARED PIPELINE TESTS
# ═══════════════════════════════════════════════════════════════════════════════

def test_fixed_nonce_gives_deterministic_proof_hash(proof_config, rich_dataset):
    generator = GenePresenceProofGenerator(proof_config)
    first = generator.generate(rich_dataset, "BRCA1", nonce=NONCE, timestamp=1000.0)
    second = generator.generate(rich_dataset, "BRCA1", nonce=NONCE, timestamp=2000.0)
    assert first.commitment_hash == second.commitment_hash
    assert first.parameter_block != second.parameter_block


def test_fresh_nonce_changes_proof_hash(proof_config, rich_dataset):
    generator = GenePresenceProofGenerator(proof_config)
    assert generator.generate(rich_dataset, "BRCA1").commitment_hash != \
        generator.generate(rich_dataset, "BRCA1").commitment_hash


def test_opening_reveals_commitment(proof_config, rich_dataset):
    generator = GenePresenceProofGenerator(proof_config)
    claim = GenePresenceClaim(target_gene="BRCA1")
    record = generator.generate(rich_dataset, claim)
    snapshot = generator.snapshot(GeneticDataset.from_input(rich_dataset), claim)

    assert CommitmentScheme().verify(record.opening.commitment, snapshot, record.opening.nonce)
    params = ProofParameters.from_bytes(record.parameter_block)
    assert params.commitment_prefix == record.opening.commitment[:16]
    assert params.claim_hash == claim.claim_hash()
    assert "opening" not in record.model_dump()


def test_snapshot_never_carries_raw_values(proof_config, rich_dataset):
    claim = GenePresenceClaim(target_gene="BRCA1")
    snapshot = GenePresenceProofGenerator(proof_config).snapshot(GeneticDataset.from_input(rich_dataset), claim)
    text = repr(snapshot)
    assert "43044295" not in text
    assert "ACGTACGT" not in text
    assert "P-001" not in text


def test_contract_arguments(proof_config, brca1_dataset):
    record = GenePresenceProofGenerator(proof_config).generate(brca1_dataset, "BRCA1")
    arguments = record.contract_arguments()
    assert len(arguments["proofHash"]) == 32
    assert len(arguments["parameters"]) == 256
    assert bytes(arguments["proofHash"]) == record.commitment_hash


def test_generate_does_not_mutate_dataset(proof_config, rich_dataset):
    before = repr(rich_dataset)
    AggregateProofGenerator(proof_config).generate(rich_dataset, {"queryType": "variant_count", "statistic": "count"})
    assert repr(rich_dataset) == before


def test_generate_batch_captures_failures(proof_config, rich_dataset):
    outcomes = GenePresenceProofGenerator(proof_config).generate_batch(rich_dataset, ["BRCA1", "NOPE1", "TP53"])
    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[1].error.startswith("ClaimNotSatisfiedError")
    assert outcomes[2].value.metadata["targetGene"] == "TP53"


def test_generate_batch_fail_fast(proof_config, rich_dataset):
    with pytest.raises(ClaimNotSatisfiedError):
        GenePresenceProofGenerator(proof_config).generate_batch(rich_dataset, ["NOPE1"], fail_fast=True)


def test_verify_locally(proof_config, rich_dataset):
    generator = GeneVariantProofGenerator(proof_config)
    claim = {"gene": "CFTR", "type": "INDEL"}
    record = generator.generate(rich_dataset, claim)
    assert generator.verify_locally(record, claim)
    assert not generator.verify_locally(record, {"gene": "CFTR", "type": "SNP"})
