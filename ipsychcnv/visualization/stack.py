"""Stacked LRR and BAF tracks for many samples at one locus."""

from typing import List, Optional, Any, Tuple, Union
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import logging
import pandas as pd

from ..cnv.calls import NORMAL_COPY_NUMBER, check_columns
from ..genomics.regions import GenomicRegion, normalize_chromosome, parse_position
from ..genomics.intensity import IntensityReader, find_sample_file, LRR_COLUMN, BAF_COLUMN
from .plots import write_figure

logger = logging.getLogger(__name__)

BOX = 1.0
SPACE = 0.5

LRR_BOX_COLOR = "#ffe2e2"
BAF_BOX_COLOR = "#e5e2ff"
GAIN_COLOR = "#2ef63c"
LOSS_COLOR = "#ff0000"


@dataclass(frozen=True)
class TrackLayout:
    """Vertical coordinates of one sample's BAF and LRR tracks."""

    top: float
    box: float = BOX
    space: float = SPACE

    @property
    def label_y(self) -> float:
        return self.top + self.space / 3

    @property
    def baf_box(self) -> Tuple[float, float]:
        return self.top - self.box, self.top

    @property
    def lrr_box(self) -> Tuple[float, float]:
        return (
            self.top - (2 * self.box + self.space / 2),
            self.top - (self.box + self.space / 2),
        )

    @property
    def bottom(self) -> float:
        return self.lrr_box[0]

    @property
    def baf_offset(self) -> float:
        return self.top - self.box

    @property
    def lrr_center(self) -> float:
        return self.top - 1.5 * self.box - self.space / 2

    @property
    def baf_center(self) -> float:
        return self.top - self.box / 2

    def next(self) -> "TrackLayout":
        """Return the layout of the sample drawn below this one."""
        return TrackLayout(self.top - (2 * self.box + 1.5 * self.space), self.box, self.space)


def page_height(per_page: int, box: float = BOX, space: float = SPACE) -> float:
    """Height of the y range holding ``per_page`` samples."""
    return per_page * (2 * box + 2 * space)


def paginate(ids: List[str], per_page: int) -> List[List[str]]:
    """Split sample IDs into pages."""
    return [ids[i:i + per_page] for i in range(0, len(ids), per_page)]


class StackPlotter:
    """Plot LRR and BAF of several samples stacked over one locus."""

    REQUIRED_COLUMNS = ["ID", "Chr", "Start", "Stop", "CN"]

    WIDTH = 1024
    HEIGHT = 768

    def __init__(
        self,
        files: List[str],
        cnvs: pd.DataFrame,
        highlight: Optional[str] = None,
        key: bool = False,
        out_folder: Union[str, Path] = ".",
        per_page: int = 5,
        pattern: str = "",
        image_format: str = "png",
        reader: Optional[IntensityReader] = None
    ):
        """Initialize stack plotter.

        Args:
            files: Intensity files of all samples.
            cnvs: CNV calls drawn as boxes over the tracks.
            highlight: Region marked with vertical lines, e.g. chr21:1050000-1350000.
            key: Show the ID_deidentified column instead of the sample ID.
            out_folder: Directory for output files.
            per_page: Samples per output page.
            pattern: Regular expression expected after the sample ID in file names.
            image_format: Output file extension (png, svg, pdf or html).
            reader: Intensity file reader.
        """
        check_columns(cnvs, self.REQUIRED_COLUMNS + (["ID_deidentified"] if key else []), "CNV table")
        if per_page < 1:
            raise ValueError(f"per_page must be positive, got {per_page}")

        self.files = list(files)
        self.cnvs = cnvs.assign(
            ID=cnvs["ID"].astype(str),
            Chr=cnvs["Chr"].map(normalize_chromosome)
        )
        self.highlight = parse_position(highlight) if highlight else None
        self.key = key
        self.out_folder = Path(out_folder)
        self.per_page = per_page
        self.pattern = pattern
        self.image_format = image_format.lstrip(".")
        self.reader = reader or IntensityReader()

    def basename(self, region: GenomicRegion, now: Optional[datetime] = None) -> str:
        """Return the output name shared by all pages."""
        locus_name = f"chr{region.chromosome}-{region.start}-{region.end}"
        if "locus" in self.cnvs.columns and len(self.cnvs) and pd.notna(self.cnvs["locus"].iloc[0]):
            return f"{self.cnvs['locus'].iloc[0]}_{locus_name}"
        stamp = (now or datetime.now()).strftime("%H.%M.%S")
        return f"{locus_name}_at_{stamp}"

    def sample_label(self, sample_id: str) -> str:
        """Return the name shown above a sample's tracks."""
        if self.key:
            match = self.cnvs.loc[self.cnvs["ID"] == sample_id, "ID_deidentified"]
            if not match.empty:
                return str(match.iloc[0])
        return str(sample_id)

    def sample_cnvs(self, sample_id: str, region: GenomicRegion) -> pd.DataFrame:
        """CNVs of a sample overlapping the region, clipped to its bounds."""
        cnvs = self.cnvs
        match = cnvs[
            (cnvs["ID"] == sample_id)
            & (cnvs["Chr"] == region.chromosome)
            & (cnvs["Start"] <= region.end)
            & (cnvs["Stop"] >= region.start)
        ]
        return match.assign(
            Start=match["Start"].clip(lower=region.start),
            Stop=match["Stop"].clip(upper=region.end)
        )

    def load_sample(self, sample_id: str, region: GenomicRegion) -> Optional[pd.DataFrame]:
        """Read a sample's SNPs inside the region, or None without a file."""
        try:
            path = find_sample_file(sample_id, self.files, self.pattern)
        except FileNotFoundError:
            logger.warning(f"No intensity file exists for {sample_id}")
            return None

        logger.info(f"Plotting {sample_id}")
        snps = self.reader.read_region(path, region.chromosome, region.start, region.end)
        return snps.assign(**{LRR_COLUMN: snps[LRR_COLUMN].clip(-1, 1)})

    def _draw_sample(
        self,
        fig,
        sample_id: str,
        snps: pd.DataFrame,
        region: GenomicRegion,
        layout: TrackLayout
    ) -> None:
        """Draw the boxes, CNV calls and points of one sample."""
        import plotly.graph_objects as go

        fig.add_annotation(
            x=region.end - (region.end - region.start) / 2,
            y=layout.label_y,
            text=f"ID: {self.sample_label(sample_id)}",
            showarrow=False
        )

        for (y0, y1), color in [(layout.lrr_box, LRR_BOX_COLOR), (layout.baf_box, BAF_BOX_COLOR)]:
            fig.add_shape(
                type="rect",
                x0=region.start, x1=region.end, y0=y0, y1=y1,
                fillcolor=color, line=dict(width=0), layer="below"
            )

        if self.highlight is not None:
            for x in (self.highlight.start, self.highlight.end):
                fig.add_shape(
                    type="line",
                    x0=x, x1=x, y0=layout.bottom, y1=layout.top,
                    line=dict(color="black", width=1.5)
                )

        for cnv in self.sample_cnvs(sample_id, region).to_dict("records"):
            if cnv["CN"] == NORMAL_COPY_NUMBER:
                continue
            color = GAIN_COLOR if cnv["CN"] > NORMAL_COPY_NUMBER else LOSS_COLOR
            fig.add_shape(
                type="rect",
                x0=cnv["Start"], x1=cnv["Stop"], y0=layout.bottom, y1=layout.top,
                line=dict(color=color, width=2)
            )

        fig.add_trace(go.Scatter(
            x=snps["Position"],
            y=snps[BAF_COLUMN] + layout.baf_offset,
            mode="markers",
            marker=dict(color="darkblue", size=3),
            name=f"{sample_id} BAF"
        ))
        fig.add_trace(go.Scatter(
            x=snps["Position"],
            y=snps[LRR_COLUMN] / 2 + layout.lrr_center,
            mode="markers",
            marker=dict(color="darkred", size=3),
            name=f"{sample_id} LRR"
        ))

        for y in (layout.baf_center, layout.lrr_center):
            fig.add_shape(
                type="line",
                x0=region.start, x1=region.end, y0=y, y1=y,
                line=dict(color="black", width=1)
            )

    def create_page(
        self,
        region: GenomicRegion,
        ids: List[str],
        title: Optional[str] = None
    ) -> Tuple[Any, List[str]]:
        """Create the figure for one page of samples.

        Args:
            region: Locus to plot.
            ids: Sample IDs on this page.
            title: Figure title, the locus by default.

        Returns:
            The figure and the IDs that had data to draw.
        """
        import plotly.graph_objects as go

        y_max = page_height(self.per_page)
        fig = go.Figure()
        layout = TrackLayout(top=y_max - SPACE)
        drawn = []

        for sample_id in ids:
            snps = self.load_sample(sample_id, region)
            if snps is None:
                continue
            if len(snps) <= 1:
                logger.warning(f"No data available at this locus for {sample_id}")
                continue

            self._draw_sample(fig, sample_id, snps, region, layout)
            drawn.append(sample_id)
            layout = layout.next()

        fig.update_xaxes(
            range=[region.start, region.end],
            side="top",
            tickformat=",d",
            showgrid=False
        )
        fig.update_yaxes(range=[0, y_max], visible=False)
        fig.update_layout(
            title=dict(text=title or region.to_string(), font=dict(size=10)),
            width=self.WIDTH,
            height=self.HEIGHT,
            showlegend=False,
            plot_bgcolor="white"
        )
        return fig, drawn

    def plot(self, pos: str, ids: List[str]) -> List[Path]:
        """Write one stacked plot per page of samples.

        Args:
            pos: Locus such as chr21:28338230-46844965.
            ids: Sample IDs to plot.

        Returns:
            Paths of the written pages.

        Raises:
            ValueError: If no IDs are given or the highlight is on another chromosome.
        """
        region = parse_position(pos)
        ids = [str(i) for i in ids if i is not None and not pd.isna(i)]
        if len(ids) < 1:
            raise ValueError("Please specify at least one ID")
        if self.highlight is not None and self.highlight.chromosome != region.chromosome:
            raise ValueError(
                "The highlight chromosome does not match the chromosome of the given position"
            )

        self.out_folder.mkdir(parents=True, exist_ok=True)
        basename = self.basename(region)

        outputs = []
        for page_number, page_ids in enumerate(paginate(ids, self.per_page), start=1):
            fig, _ = self.create_page(region, page_ids, title=pos)
            output = self.out_folder / f"{basename}_page-{page_number}.{self.image_format}"
            outputs.append(write_figure(fig, output, width=self.WIDTH, height=self.HEIGHT))
            logger.info(f"Saved page {page_number} to {output}")

        return outputs
