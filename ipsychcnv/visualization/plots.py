"""Log R Ratio and B Allele Frequency plots for individual CNV calls."""

from typing import List, Optional, Dict, Any, Iterable, Union
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
import logging
import numpy as np
import pandas as pd

from ..cnv.calls import check_columns
from ..genomics.regions import GenomicRegion, normalize_chromosome, parse_position
from ..genomics.intensity import (
    IntensityReader,
    find_sample_file,
    sliding_window_mean,
    window_size,
    LRR_COLUMN,
    BAF_COLUMN,
)

logger = logging.getLogger(__name__)


def format_number(value: Any) -> str:
    """Format integral floats (3.0) without decimals."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def axis_ticks(positions: Iterable[float], n_breaks: int = 10) -> List[float]:
    """Evenly spaced ticks from the first to the last position."""
    positions = np.asarray(list(positions), dtype=float)
    if positions.size == 0:
        return []
    low, high = positions.min(), positions.max()
    step = round((high - low) / n_breaks)
    if step <= 0:
        return [float(low)]
    return [float(t) for t in np.arange(low, high + 1, step)]


def write_figure(
    fig,
    output_path: Union[str, Path],
    width: int,
    height: int,
    scale: float = 1.0
) -> Path:
    """Write a plotly figure to an image file, or HTML for .html paths."""
    output_path = Path(output_path)
    if output_path.suffix.lower() == ".html":
        fig.write_html(str(output_path))
    else:
        fig.write_image(str(output_path), width=width, height=height, scale=scale)
    return output_path


class CNVPlotter:
    """Plot LRR and BAF signal around each CNV of a table."""

    REQUIRED_COLUMNS = ["Chr", "Start", "Stop", "Length"]

    WIDTH = 1000
    HEIGHT = 500

    def __init__(
        self,
        plot_position: float = 10,
        window: Optional[int] = None,
        dpi: int = 300,
        key: bool = False,
        out_folder: Union[str, Path] = ".",
        x_axis_define: Optional[str] = None,
        image_format: str = "png",
        reader: Optional[IntensityReader] = None
    ):
        """Initialize plotter.

        Args:
            plot_position: Flanking region on each side, in multiples of the
                CNV length.
            window: Fixed smoothing window; derived from the SNP count of each
                CNV when None.
            dpi: Output resolution.
            key: Show the ID_deidentified column instead of the sample ID.
            out_folder: Directory for output files.
            x_axis_define: Fixed plot region such as chr21:1050000-1350000.
            image_format: Output file extension (png, svg, pdf or html).
            reader: Intensity file reader.
        """
        self.plot_position = plot_position
        self.window = window
        self.dpi = dpi
        self.key = key
        self.out_folder = Path(out_folder)
        self.x_axis_define = parse_position(x_axis_define) if x_axis_define else None
        self.image_format = image_format.lstrip(".")
        self.reader = reader or IntensityReader()

    def plot_region(self, row: Dict[str, Any]) -> GenomicRegion:
        """Return the genomic region to plot for a CNV."""
        chromosome = normalize_chromosome(row["Chr"])
        start, stop = int(row["Start"]), int(row["Stop"])

        if self.x_axis_define is not None:
            region = self.x_axis_define
            if region.chromosome != chromosome:
                raise ValueError(
                    "The x-axis chromosome does not match the chromosome of the CNV"
                )
            if not region.covers(start, stop):
                raise ValueError("The x-axis start and stop do not cover the CNV")
            return region

        flank = float(row["Length"]) * self.plot_position
        return GenomicRegion(chromosome, start - flank, stop + flank)

    def sample_label(self, row: Dict[str, Any]) -> str:
        """Return the sample name shown on the plot."""
        if self.key:
            return str(row["ID_deidentified"])
        return str(row["ID"])

    def output_path(self, row: Dict[str, Any]) -> Path:
        """Return the output file for a CNV."""
        name = (
            f"{self.sample_label(row)}_chr{normalize_chromosome(row['Chr'])}_"
            f"{int(row['Start'])}-{int(row['Stop'])}_plot.{self.image_format}"
        )
        return self.out_folder / name

    def make_title(self, row: Dict[str, Any]) -> str:
        """Return the plot title for a CNV."""
        return (
            f"CN: {format_number(row.get('CN'))}   "
            f"Size: {int(row['Length']):,}   "
            f"SNPs: {format_number(row.get('NumSNPs'))}   "
            f"Sample: {self.sample_label(row)}"
        )

    def create_figure(self, row: Dict[str, Any], snps: pd.DataFrame) -> Any:
        """Create the BAF and LRR tracks for a CNV.

        Args:
            row: CNV record with Chr, Start, Stop, Length and optionally CN,
                NumSNPs and ID.
            snps: SNPs in the plot region ordered by position.

        Returns:
            Plotly figure.
        """
        import plotly.graph_objects as go
        from plotly.colors import qualitative
        from plotly.subplots import make_subplots

        colors = qualitative.Set1
        window = window_size(row.get("NumSNPs", 0), self.window)
        mean = sliding_window_mean(snps[LRR_COLUMN], window)

        fig = make_subplots(
            rows=2, cols=1,
            shared_xaxes=True,
            vertical_spacing=0.05,
            subplot_titles=("B Allele Frequency", "Log R Ratio")
        )

        fig.add_trace(
            go.Scatter(
                x=snps["Position"],
                y=snps[BAF_COLUMN],
                mode="markers",
                marker=dict(color=colors[1], size=3),
                name="B.Allele.Freq"
            ),
            row=1, col=1
        )

        fig.add_shape(
            type="rect",
            x0=int(row["Start"]), x1=int(row["Stop"]),
            y0=0, y1=1,
            fillcolor=colors[2],
            opacity=0.2,
            line=dict(color=colors[2], width=1),
            name="CNV region",
            row=1, col=1
        )

        fig.add_trace(
            go.Scatter(
                x=snps["Position"],
                y=snps[LRR_COLUMN],
                mode="markers",
                opacity=0.6,
                marker=dict(color=colors[0], size=3),
                name="Log.R.Ratio"
            ),
            row=2, col=1
        )

        fig.add_trace(
            go.Scatter(
                x=snps["Position"],
                y=mean,
                mode="lines",
                line=dict(color="black", width=1),
                name="Mean"
            ),
            row=2, col=1
        )

        ticks = axis_ticks(snps["Position"])
        fig.update_xaxes(tickvals=ticks, tickformat="~s")
        fig.update_yaxes(range=[-1, 1], row=2, col=1)
        fig.update_layout(
            title=self.make_title(row),
            width=self.WIDTH,
            height=self.HEIGHT,
            showlegend=True
        )

        return fig

    def plot_cnv(
        self,
        row: Dict[str, Any],
        files: List[str],
        pattern: str = ""
    ) -> Path:
        """Read intensity data for one CNV and write its plot.

        Args:
            row: CNV record.
            files: Candidate intensity files.
            pattern: Regular expression expected after the sample ID in file names.

        Returns:
            Path of the written plot.
        """
        region = self.plot_region(row)
        raw_file = find_sample_file(row["ID"], files, pattern)
        logger.info(f"Plotting {row['ID']} chr{region.chromosome} from {raw_file}")

        snps = self.reader.read_region(raw_file, region.chromosome, region.start, region.end)
        if snps.empty:
            logger.warning(f"No SNPs for {row['ID']} in {region.to_string()}")

        fig = self.create_figure(row, snps)
        return write_figure(
            fig,
            self.output_path(row),
            width=self.WIDTH,
            height=self.HEIGHT,
            scale=self.dpi / 100
        )

    def plot_cnvs(
        self,
        df: pd.DataFrame,
        files: List[str],
        pattern: str = "",
        cores: int = 1
    ) -> List[Path]:
        """Plot every CNV of a table.

        Args:
            df: CNV table.
            files: Candidate intensity files.
            pattern: Regular expression expected after the sample ID in file names.
            cores: Number of worker processes.

        Returns:
            Output paths in table order.
        """
        required = self.REQUIRED_COLUMNS + ["ID"] + (["ID_deidentified"] if self.key else [])
        check_columns(df, required, "CNV table")

        self.out_folder.mkdir(parents=True, exist_ok=True)
        rows = df.to_dict("records")
        logger.info(f"Plotting {len(rows)} CNVs to {self.out_folder}")

        if cores <= 1 or len(rows) <= 1:
            return [self.plot_cnv(row, files, pattern) for row in rows]

        with ProcessPoolExecutor(max_workers=cores) as executor:
            return list(executor.map(
                _plot_row,
                [self] * len(rows),
                rows,
                [files] * len(rows),
                [pattern] * len(rows)
            ))


def _plot_row(plotter: CNVPlotter, row: Dict[str, Any], files: List[str], pattern: str) -> Path:
    return plotter.plot_cnv(row, files, pattern)
