"""Unit tests for genomics modules."""

import pytest
import numpy as np
import pandas as pd

from ipsychcnv.genomics.regions import GenomicRegion, normalize_chromosome, parse_position
from ipsychcnv.genomics.intensity import (
    IntensityReader,
    find_sample_file,
    list_intensity_files,
    sliding_window_mean,
    window_size,
    LRR_COLUMN,
    BAF_COLUMN,
)


def write_intensity_file(path, rows):
    """Write an Illumina style intensity file."""
    df = pd.DataFrame(rows, columns=["Name", "Chr", "Position", "Log R Ratio", "B Allele Freq"])
    df.to_csv(path, sep="\t", index=False)
    return path


@pytest.fixture
def intensity_file(tmp_path):
    """Intensity file with SNPs on two chromosomes."""
    return write_intensity_file(tmp_path / "S1.txt", [
        ("rs1", "1", 300, 0.1, 0.5),
        ("rs2", "1", 100, -0.2, 0.0),
        ("rs3", "1", 200, 0.3, 2),
        ("rs4", "2", 150, 0.0, 1.0),
        ("rs5", "1", 400, -0.5, 0.5),
    ])


class TestNormalizeChromosome:
    """Tests for chromosome name normalization."""

    def test_normalize(self):
        """Test prefixes and numeric types are normalized."""
        assert normalize_chromosome(1) == "1"
        assert normalize_chromosome("chr21") == "21"
        assert normalize_chromosome("ChrX") == "X"
        assert normalize_chromosome(1.0) == "1"
        assert normalize_chromosome(" 7 ") == "7"


class TestGenomicRegion:
    """Tests for GenomicRegion class."""

    def test_region_creation(self):
        """Test basic region creation."""
        region = GenomicRegion("21", 1050000, 1350000)

        assert region.length == 300000
        assert region.to_string() == "chr21:1050000-1350000"

    def test_covers(self):
        """Test interval coverage includes the region bounds."""
        region = GenomicRegion("2", 1000, 2000)

        assert region.covers(1000, 2000) is True
        assert region.covers(1200, 1800) is True
        assert region.covers(900, 1500) is False
        assert region.covers(1500, 2100) is False


class TestParsePosition:
    """Tests for position string parsing."""

    def test_parse(self):
        """Test a standard position string."""
        region = parse_position("chr21:1050000-1350000")

        assert region == GenomicRegion("21", 1050000, 1350000)

    def test_parse_highlight_flag_and_commas(self):
        """Test command line prefixes and thousands separators are accepted."""
        region = parse_position("--highlight chr21:1,050,000-1,350,000")

        assert region.start == 1050000
        assert region.end == 1350000

    def test_parse_without_prefix(self):
        """Test chromosome without chr prefix."""
        assert parse_position("X:10-20").chromosome == "X"

    @pytest.mark.parametrize("position", ["chr21", "chr21:100", "chr21:abc-200", ""])
    def test_parse_invalid(self, position):
        """Test malformed position strings."""
        with pytest.raises(ValueError, match="Invalid position"):
            parse_position(position)

    def test_parse_start_after_stop(self):
        """Test reversed coordinates."""
        with pytest.raises(ValueError, match="Start is after stop"):
            parse_position("chr1:200-100")


class TestWindow:
    """Tests for smoothing window and moving average."""

    def test_window_from_snp_count(self):
        """Test window is the rounded square root of the SNP count."""
        assert window_size(100) == 10
        assert window_size(150) == 12

    def test_window_clamped(self):
        """Test window bounds."""
        assert window_size(4) == 5
        assert window_size(10000) == 35
        assert window_size(0) == 5
        assert window_size(np.nan) == 5

    def test_explicit_window(self):
        """Test an explicit window overrides the SNP count."""
        assert window_size(10000, window=7) == 7
        assert window_size(100, window=50) == 35

    def test_window_does_not_carry_over(self):
        """Test each CNV gets its own window."""
        sizes = [window_size(n) for n in (900, 16, 900)]
        assert sizes == [30, 5, 30]

    def test_sliding_window_mean(self):
        """Test centered moving average."""
        mean = sliding_window_mean([1, 2, 3, 4, 5], 3)
        np.testing.assert_allclose(mean, [1.5, 2.0, 3.0, 4.0, 4.5])

    def test_sliding_window_mean_with_missing(self):
        """Test missing values are ignored."""
        mean = sliding_window_mean([1, np.nan, 3], 3)
        np.testing.assert_allclose(mean, [1.0, 2.0, 3.0])


class TestSampleFiles:
    """Tests for intensity file lookup."""

    def test_find_sample_file_word_boundary(self):
        """Test sample 10 does not match file 110."""
        files = ["/data/110.txt", "/data/10.txt"]

        assert find_sample_file("10", files, r"\.txt") == "/data/10.txt"
        assert find_sample_file("110", files, r"\.txt") == "/data/110.txt"

    def test_find_sample_file_missing(self):
        """Test missing sample file."""
        with pytest.raises(FileNotFoundError):
            find_sample_file("S9", ["/data/S1.txt"], r"\.txt")

    def test_list_intensity_files(self, tmp_path):
        """Test listing with pattern and recursion."""
        (tmp_path / "sub").mkdir()
        (tmp_path / "S1.txt").write_text("x")
        (tmp_path / "notes.md").write_text("x")
        (tmp_path / "sub" / "S2.txt").write_text("x")

        flat = list_intensity_files(tmp_path, r"\.txt$")
        nested = list_intensity_files(tmp_path, r"\.txt$", recursive=True)

        assert [p.split("/")[-1] for p in flat] == ["S1.txt"]
        assert sorted(p.split("/")[-1] for p in nested) == ["S1.txt", "S2.txt"]


class TestIntensityReader:
    """Tests for IntensityReader class."""

    def test_read(self, intensity_file):
        """Test column normalization and CN marker masking."""
        df = IntensityReader().read(intensity_file)

        assert list(df.columns) == ["Name", "Chr", "Position", LRR_COLUMN, BAF_COLUMN]
        assert len(df) == 5
        assert df.loc[df["Name"] == "rs3", BAF_COLUMN].isna().all()

    def test_read_chromosome(self, intensity_file):
        """Test chromosome filter."""
        df = IntensityReader().read(intensity_file, chromosome="chr2")
        assert list(df["Name"]) == ["rs4"]

    def test_read_region(self, intensity_file):
        """Test strict region bounds and position order."""
        df = IntensityReader().read_region(intensity_file, "1", 100, 400)
        assert list(df["Position"]) == [200, 300]

    def test_lcr_removed(self, intensity_file):
        """Test low copy repeat SNPs are dropped."""
        df = IntensityReader(lcr=["rs1", "rs5"]).read(intensity_file, chromosome="1")
        assert list(df["Name"]) == ["rs2", "rs3"]

    def test_snp_list_override(self, intensity_file):
        """Test positions from a SNP list replace file positions."""
        snp_list = pd.DataFrame({
            "Name": ["rs1", "rs2"],
            "Chr": ["3", "3"],
            "Position": [5000, 6000],
        })
        df = IntensityReader(snp_list=snp_list).read(intensity_file)

        assert list(df["Chr"]) == ["3", "3"]
        assert sorted(df["Position"]) == [5000, 6000]

    def test_snp_list_missing_columns(self):
        """Test SNP list validation."""
        with pytest.raises(ValueError, match="SNP list"):
            IntensityReader(snp_list=pd.DataFrame({"Name": ["rs1"]}))

    def test_skip_header_lines(self, tmp_path):
        """Test leading lines are skipped."""
        path = tmp_path / "S2.txt"
        write_intensity_file(path, [("rs1", "1", 100, 0.1, 0.5)])
        content = path.read_text()
        path.write_text("[Header]\nGSGT Version\t2.0\n" + content)

        df = IntensityReader(skip=2).read(path)
        assert list(df["Name"]) == ["rs1"]

    def test_missing_signal_column(self, tmp_path):
        """Test files without LRR are rejected."""
        path = tmp_path / "S3.txt"
        pd.DataFrame({"Name": ["rs1"], "Chr": ["1"], "Position": [1]}).to_csv(
            path, sep="\t", index=False
        )

        with pytest.raises(ValueError, match="Missing required column"):
            IntensityReader().read(path)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
