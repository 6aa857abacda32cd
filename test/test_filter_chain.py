from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from footage.filters import FilterChain, FilterStage, classify_filter, split_filter_list


def test_user_crop_replaces_computed_crop() -> None:
    chain = FilterChain(crop="crop=w=3456:h=1944:x=192:y=216", scale="scale=3840:2160")
    chain.apply(["crop=100:100:0:0"])
    assert chain.slot(FilterStage.CROP) == "crop=100:100:0:0"
    assert chain.render().startswith("crop=100:100:0:0,scale=3840:2160")


def test_stages_render_in_fixed_order_with_format() -> None:
    chain = FilterChain(crop="crop=w=10:h=10:x=0:y=0", scale="scale=20:20")
    chain.apply(["lut3d=file.cube", "eq=contrast=1.1", "unsharp=5:5:0.8", "noise=alls=2", "hqdn3d=2"])
    assert chain.render("yuv420p") == (
        "crop=w=10:h=10:x=0:y=0,scale=20:20,format=yuv420p,hqdn3d=2,"
        "noise=alls=2,unsharp=5:5:0.8,eq=contrast=1.1,lut3d=file.cube"
    )


def test_texture_slot_appends_and_others_keep_last_writer() -> None:
    chain = FilterChain()
    chain.apply(["noise=alls=2,eq=gamma=1.1", "vignette", "eq=gamma=1.2"])
    assert chain.slot(FilterStage.TEXTURE) == "noise=alls=2,vignette"
    assert chain.slot(FilterStage.COLOR) == "eq=gamma=1.2"


def test_empty_slots_are_skipped() -> None:
    assert FilterChain().render() == ""
    assert FilterChain(scale="scale=3840:2160:flags=lanczos").render("yuv420p10le") == (
        "scale=3840:2160:flags=lanczos,format=yuv420p10le"
    )


def test_classify_filter_by_name() -> None:
    assert classify_filter("nlmeans=s=3") is FilterStage.DENOISE
    assert classify_filter("CAS=0.5") is FilterStage.SHARPEN
    assert classify_filter("curves=preset=vintage") is FilterStage.COLOR
    assert classify_filter("haldclut") is FilterStage.LOOK
    assert classify_filter("drawtext=text=hi") is FilterStage.TEXTURE


def test_split_keeps_escaped_and_quoted_commas() -> None:
    assert split_filter_list(r"eq=contrast=1.1,select=eq(n\,0),drawtext=text='a,b'") == [
        "eq=contrast=1.1",
        r"select=eq(n\,0)",
        "drawtext=text='a,b'",
    ]
    assert split_filter_list("") == []
