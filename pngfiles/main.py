import argparse
import logging
import os
import sys

from PIL import Image

from pngfiles import __version__, file_chunk
from pngfiles.decode_files import decode_path, list_files
from pngfiles.encode_files import encode_path
from pngfiles.errors import NameCollision, PngFilesException
from pngfiles.print_chunks import printChunks, printFiles
from pngfiles.remove_files import remove_path


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pngfiles",
        description="Hide files inside a PNG image, get them back out, or remove them.",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("-e", "--encode", action="store_true", help="Encode files into PNG")
    mode.add_argument("-d", "--decode", action="store_true", help="Decode files from PNG")
    mode.add_argument("-r", "--remove", action="store_true", help="Remove files from PNG")
    mode.add_argument("-l", "--list", action="store_true", help="List files embedded in PNG")

    parser.add_argument("-i", "--input", required=True, help="The input PNG file")
    parser.add_argument(
        "-o", "--output",
        help="Encode: the PNG to write. Decode: directory to extract to (default: .). "
             "Remove: the PNG to write (default: rewrite the input)",
    )
    parser.add_argument(
        "--fragment-size", type=int, default=file_chunk.MAX_FRAGMENT_SIZE,
        help="Largest number of file bytes stored in one chunk (default: %(default)s)",
    )
    parser.add_argument(
        "--check", action="store_true",
        help="Re-open the written PNG with Pillow to make sure it still decodes",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("files", nargs="*", help="Files to encode, decode or remove")
    return parser


def read_files(paths) -> dict:
    #embedded name is the base file name + ext
    files = {}
    for path in paths:
        name = os.path.basename(path)
        if name in files:
            raise NameCollision(name, f"Key {name} given twice")
        with open(path, 'rb') as f:
            files[name] = f.read()
    return files


def check_image(path):
    try:
        with Image.open(path) as im:
            im.verify()
    except SyntaxError as e:
        #Pillow reports broken PNG structure as SyntaxError
        raise OSError(f"{path} no longer decodes: {e}") from e


def run(args):
    if args.list:
        with open(args.input, 'rb') as src:
            if args.verbose:
                printChunks(src)
                return
            files = list_files(src)
        printFiles(files)
        return

    names = [os.path.basename(f) for f in args.files]

    if args.encode:
        count = encode_path(args.input, args.output, read_files(args.files), args.fragment_size)
        written = args.output
        print(f"Embedded {len(names)} file(s) in {count} chunk(s) → {args.output}")
    elif args.decode:
        paths = decode_path(args.input, names, args.output or ".")
        for path in paths:
            print(f"Extracted → {path}")
        return
    else:
        written = args.output or args.input
        count = remove_path(args.input, names, args.output)
        print(f"Removed {len(names)} file(s), {count} chunk(s) → {written}")

    if args.check:
        check_image(written)
        print(f"Checked {written}: image still decodes")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.list and not args.files:
        parser.error("the following arguments are required: files")
    if args.encode and not args.output:
        parser.error("--output is required in encode mode")
    if args.fragment_size < 1:
        parser.error("--fragment-size must be at least 1")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        run(args)
    except PngFilesException as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
