import os
import pytest
import numpy as np
import uvitdrp.mocks as mocks
import uvitdrp.offsets as offsets
from uvitdrp.data import EventList, SkyImage
from uvitdrp.params import ReductionParameters
from uvitdrp.session import ReductionSession

from test_interactive import ScriptedPrompt

nframes = 1000
frame_time = 0.035
frame_times = np.arange(nframes) * frame_time


def no_prompt(question):
    raise AssertionError("Unattended session prompted: {0}".format(question))


class RecordingRegister():
    """
    Registration stand-in that remembers its calls and shifts the offsets by a fixed amount
    """
    def __init__(self, shift=0.):
        self.shift = shift
        self.calls = []

    def __call__(self, events, params, mask, xoff, yoff, threshold, mode):
        self.calls.append({"mask": np.copy(mask), "xoff": np.copy(xoff), "threshold": threshold, "mode": mode})
        return xoff + self.shift, yoff + self.shift


def _vis_majority_events(**kwargs):
    att = np.zeros(nframes, dtype=int)
    att[100:300] = 1
    vis_offsets = mocks.create_mock_vis_offsets(frame_times, att=att)
    return mocks.create_mock_events(nframes=nframes, frame_time=frame_time, vis_offsets=vis_offsets, **kwargs)


def _params(events, tmp_path, **kwargs):
    return ReductionParameters.from_events(events, output_dir=str(tmp_path), resolution=2, **kwargs)


def test_snapshot_restore_roundtrip():
    events = _vis_majority_events()
    session = ReductionSession(events, params=ReductionParameters.from_events(events))
    saved = session.snapshot_dqi()

    session.reconcile()
    assert np.count_nonzero(events.dqi) == 200
    assert np.count_nonzero(session.saved_dqi) == 0

    session.restore_dqi()
    assert np.array_equal(events.dqi, saved)
    # the working array is restored in place, not replaced
    session.saved_dqi[0] = 7
    assert events.dqi[0] == 0


def test_unattended_pass(tmp_path):
    """
    One pass without prompts: the visible offsets are chosen, the image is co-added from the
    good frames, and the saved events carry the offsets and the original DQI
    """
    events = _vis_majority_events(detector="FUV")
    events.filename = "obs_l2.fits"
    register = RecordingRegister()
    session = ReductionSession(events, params=_params(events, tmp_path), prompt=no_prompt, register_func=register)

    session.run()

    assert session.iterations == 1
    assert session.solution.source == offsets.SOURCE_VIS
    assert session.nframes_added == 800
    assert np.count_nonzero(events.dqi) == 200

    # registration sees offsets scaled by the resolution and only the good frames
    assert len(register.calls) == 1
    assert register.calls[0]["xoff"] == pytest.approx(session.solution.xoff * 2)
    assert np.count_nonzero(register.calls[0]["mask"]) == 800
    assert register.calls[0]["mode"] == session.params.register_mode

    assert len(session.products) == 3
    image = SkyImage(os.path.join(str(tmp_path), "images", "obs_l2_image.fits"))
    assert image.ext_hdr["NFRAMES"] == 800
    assert image.ext_hdr["OFFSRC"] == "VIS"
    assert image.data.shape == (1024, 1024)
    assert image.data.sum() > 0
    assert os.path.exists(os.path.join(str(tmp_path), "png", "obs_l2_image.png"))

    saved = EventList(os.path.join(str(tmp_path), "events", "obs_l2_events.fits"))
    assert np.all(saved.dqi == 0)
    assert saved.xoff == pytest.approx(session.solution.xoff, abs=1e-5)
    assert saved.yoff == pytest.approx(session.solution.yoff, abs=1e-5)
    assert saved.pri_hdr["OFFSRC"] == "VIS"
    assert saved.get_frame_range() == (0, nframes - 1)
    assert not saved.vis_offsets.is_dummy

    # the input offsets themselves are left alone
    assert not np.allclose(events.xoff, session.solution.xoff)


def test_registered_offsets_are_kept(tmp_path):
    """
    Offsets refined by registration are converted back to detector pixels
    """
    events = mocks.create_mock_events(nframes=100)
    session = ReductionSession(events, params=_params(events, tmp_path), register_func=RecordingRegister(shift=1.),
                               save_products=False)

    session.run()

    assert session.solution.source == offsets.SOURCE_UV
    assert session.xoff == pytest.approx(events.xoff + 0.5)
    assert session.products == []
    assert not os.path.exists(os.path.join(str(tmp_path), "images"))


def test_unattended_no_good_frames(tmp_path):
    """
    No good frames: nothing is reduced and nobody is asked anything
    """
    events = mocks.create_mock_events(nframes=100, dqi=np.ones(100, dtype=np.int16))
    register = RecordingRegister()
    session = ReductionSession(events, params=_params(events, tmp_path), prompt=no_prompt, register_func=register)

    session.run()

    assert session.iterations == 0
    assert session.solution is None
    assert register.calls == []
    assert session.products == []


def test_interactive_no_good_frames_gives_up(tmp_path):
    events = mocks.create_mock_events(nframes=100, dqi=np.ones(100, dtype=np.int16))
    prompt = ScriptedPrompt(["n", "n"])
    session = ReductionSession(events, params=_params(events, tmp_path), interactive=True, prompt=prompt)

    session.run()

    assert session.iterations == 0
    assert len(prompt.answers) == 0


def test_interactive_fix_frame_range(tmp_path):
    """
    The operator moves the frame range onto good frames and the reduction proceeds
    """
    dqi = np.ones(nframes, dtype=np.int16)
    dqi[:100] = 0
    events = mocks.create_mock_events(nframes=nframes, dqi=dqi)
    params = _params(events, tmp_path, min_frame=500)
    register = RecordingRegister()
    prompt = ScriptedPrompt(["n",                       # edit before reducing
                             "y", "min_frame", "0", "", # edit and try again
                             "y",                       # keep UV offsets
                             "n",                       # don't save
                             "n"])                      # don't repeat
    session = ReductionSession(events, params=params, interactive=True, prompt=prompt, register_func=register)

    session.run()

    assert len(prompt.answers) == 0
    assert session.iterations == 1
    assert session.nframes_added == 100
    assert np.count_nonzero(register.calls[0]["mask"]) == 100


def test_interactive_repeat_restores_dqi(tmp_path):
    """
    A second pass starts from the original DQI, not from the flags raised by the first pass
    """
    events = _vis_majority_events()
    register = RecordingRegister()
    prompt = ScriptedPrompt(["n",                           # edit before reducing
                             "y",                           # keep visible offsets
                             "n",                           # don't save
                             "y", "max_frame", "199", "",   # repeat with fewer frames
                             "n", "u",                      # switch to UV offsets
                             "y",                           # save
                             "n"])                          # stop
    session = ReductionSession(events, params=_params(events, tmp_path), interactive=True, prompt=prompt,
                               register_func=register)

    session.run()

    assert len(prompt.answers) == 0
    assert session.iterations == 2
    assert len(register.calls) == 2
    assert np.count_nonzero(register.calls[0]["mask"]) == 800
    # frames 0-99 are good, frames 100-199 flagged by the policy again in the second pass
    assert np.count_nonzero(register.calls[1]["mask"]) == 100
    assert np.count_nonzero(events.dqi) == 200

    assert session.solution.source == offsets.SOURCE_UV
    assert session.xoff == pytest.approx(events.xoff)
    assert len(session.products) == 3
    saved = EventList(session.products[-1])
    assert saved.get_frame_range() == (0, 199)
    assert np.all(saved.dqi == 0)


def test_register_failure_keeps_saved_dqi(tmp_path):
    """
    A failing registration stops the pass, and the saved DQI can still be restored
    """
    def broken_register(*args):
        raise RuntimeError("registration failed")

    events = _vis_majority_events()
    session = ReductionSession(events, params=_params(events, tmp_path), register_func=broken_register)

    with pytest.raises(RuntimeError):
        session.run()

    assert np.count_nonzero(events.dqi) == 200
    session.restore_dqi()
    assert np.count_nonzero(events.dqi) == 0


def test_no_overwrite(tmp_path):
    events = mocks.create_mock_events(nframes=50)
    events.filename = "obs.fits"
    params = _params(events, tmp_path, overwrite=False)

    first = ReductionSession(events, params=params)
    first.run()
    assert len(first.products) == 3

    second = ReductionSession(events, params=params)
    second.run()
    assert second.products == []
