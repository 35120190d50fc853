# gifgrep

Grep the GIF. Stick the landing.

`gifgrep` is a Python library for working with animated GIFs: it decodes them
into composited PNG frames, picks the frame shown at a given moment, lays out
sampled frames as a contact sheet, and writes lists of GIF results as text,
with inline thumbnails for terminals that speak the Kitty graphics protocol or
iTerm2 inline images.

## Installation

```
pip install .
```

Python 3.10 or later is required. Image work is done with Pillow.

## Decoding

```python
from gifgrep.gifdecode import decode, default_options

with open("cat.gif", "rb") as fh:
    decoded = decode(fh.read(), default_options())

print(decoded.width, decoded.height, len(decoded.frames))
first = decoded.frames[0]      # Frame(png=b"...", delay=timedelta(...))
```

`decode(data, opts)` and `decode_stream(stream, opts)` return a `Frames`
object holding a list of `Frame` values (PNG bytes plus a `timedelta` delay)
and the canvas size. Frame offsets, transparency and the "restore to
background" and "restore to previous" disposal methods are applied, so every
PNG is the full picture as it would be shown.

`DecodeOptions` sets the limits; zero fields take the defaults from
`default_options()`:

| field           | default     | meaning                                      |
|-----------------|-------------|----------------------------------------------|
| `max_frames`    | 60          | frames kept (negative keeps all)             |
| `max_pixels`    | 40,000,000  | canvas size limit (negative disables)        |
| `max_bytes`     | 20 MiB      | input size limit (negative disables)         |
| `default_delay` | 80 ms       | delay used when a frame has none             |
| `min_delay`     | 10 ms       | delays are clamped to at least this          |
| `max_delay`     | 1 s         | delays are clamped to at most this           |
| `strict_gif`    | `False`     | refuse non-GIF input                         |

Without `strict_gif`, data that is not a GIF but that Pillow can open (a PNG
or JPEG, for example) comes back as a single frame. Errors are raised as
`TooLargeError`, `NoFramesError` and `InvalidSizeError`, all subclasses of
`GifDecodeError`.

## Stills and contact sheets

```python
from datetime import timedelta
from gifgrep.stills import SheetOptions, contact_sheet, frame_at_png

png, index = frame_at_png(decoded, timedelta(seconds=1.5))
sheet_png = contact_sheet(decoded, SheetOptions(count=12, columns=4, padding=2))
```

`frame_index_at(frames, at)` returns the index of the frame on screen at `at`.
`contact_sheet` samples `count` frames evenly over the animation's running
time; `columns=0` gives a roughly square grid, and the background is
transparent unless `background` is an RGBA tuple. Problems raise
`StillsError`.

`gifgrep.extract.run_extract(options)` does the whole job from an
`gifgrep.model.Options` value: it reads `gif_input` (a local path, a `file://`
URL or an `http(s)://` URL), then writes either the still at `still_at` (when
`still_set` is true) or a contact sheet of `stills_count` frames to
`out_path`, which defaults to `still.png` or `sheet.png`; `-` means standard
output.

`gifgrep.duration.parse_duration` turns text such as `1.5s`, `250ms` or a
plain number of seconds such as `1.25` into a `timedelta`.

## Rendering results

`gifgrep.model.Result` describes one GIF (id, title, URL, preview URL, size);
`Result.to_dict()` gives its JSON form.

`gifgrep.render.write_search_results` writes a list of results in one of the
`OutputFormat` values: `plain` (title, then the indented URL, with thumbnails
when an `InlineProtocol` other than `NONE` is given), `tsv`, `md`, `url` or
`comment`. `resolve_output_format(options, is_tty)` maps `auto` to `plain` on a
terminal and `url` otherwise. Thumbnail fetching, decoding and sending can be
swapped out through `ThumbHooks`.

The escape sequences themselves come from `gifgrep.kitty` (`send_frame`,
`send_animation`, `place_image`, `delete_image`) and `gifgrep.iterm`
(`send_inline_file` with an `InlineFile`).

## Files

- `gifgrep.download.to_downloads(result)` saves a result's GIF into
  `~/Downloads` under a cleaned-up name from `filename_for_result`, adding
  `-1`, `-2`, … when the name is taken, and returns the path.
- `gifgrep.reveal.reveal(path)` shows a file in the file manager (`open -R`,
  `explorer.exe /select,`, `xdg-open` or `gio open`).
- `gifgrep.clipboard.copy_file(path)` puts a file on the clipboard
  (`osascript`, `xclip` or `wl-copy`).

## What this package does not do

There is no `gifgrep` command: everything is used from Python. The package
also does not query any GIF search service; results are `Result` values that
you build yourself.