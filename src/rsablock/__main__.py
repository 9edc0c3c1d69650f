"""The Command Line Interface for the utility, including Interactive elements.

What I would call a hybrid CLI/ICLI (Command Line Interface/Interactive Command Lice Interface) that automagically
generates the INTERACTIVE part on-the-fly based on the missing components of the CLI interaction, including the
option that none are included.

Typical usage example:

    rsablock
    OR
    python -m rsablock keygen --keysize 2048 --directory keys
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import logging
import pathlib
import sys
import typing

import rsablock
from rsablock import codec

MOD_FILE = "nValue.txt"
PUB_FILE = "eValue.txt"
PRIV_FILE = "dValue.txt"
DEFAULT_KEYSIZE = 2048


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Type = str
    choices: list[str] | None = None
    default: typing.Any = None
    advanced: bool = False


help_dict: dict[str, HelpData] = {
    "subcommand":
        HelpData(
            description="The available subcommands in RSA Block.",
            choices=["keygen", "encrypt", "decrypt", "export"],
        ),
    "keygen":
        HelpData("Key generation utility."),
    "encrypt":
        HelpData("File encryption utility."),
    "decrypt":
        HelpData("File decryption utility."),
    "export":
        HelpData("Public key PEM export utility."),
    "directory":
        HelpData(
            description=f"Directory to write the key value files ({MOD_FILE}, {PUB_FILE}, {PRIV_FILE}) to.",
            format=pathlib.Path,
            default=pathlib.Path("."),
        ),
    "keysize":
        HelpData(
            description="Size of each of the two generating primes (in bits).",
            format=int,
            default=DEFAULT_KEYSIZE,
        ),
    "modulus":
        HelpData(
            description="Location of the modulus value file.",
            format=pathlib.Path,
        ),
    "exponent":
        HelpData(
            description="Location of the public exponent value file.",
            format=pathlib.Path,
        ),
    "private_exponent":
        HelpData(
            description="Location of the private exponent value file.",
            format=pathlib.Path,
        ),
    "input":
        HelpData(
            description="Location of the file to transform.",
            format=pathlib.Path,
        ),
    "output":
        HelpData(
            description="Location of the transformed file. Derived from the input file name if omitted.",
            format=pathlib.Path,
            advanced=True,
        ),
    "block_size":
        HelpData(
            description="Plaintext block size in bytes. Defaults to the largest the modulus supports.",
            format=int,
            advanced=True,
        ),
    "pem":
        HelpData(
            description="Location of the PEM file to write the public key to.",
            format=pathlib.Path,
        ),
    "overwrite":
        HelpData(
            description="Overwrite specified destination files if they exist?",
            choices=["Y", "N"],
            default="N",
        )
}

needs = {
    "keygen": ("directory", "keysize"),
    "encrypt": ("modulus", "exponent", "input"),
    "decrypt": ("modulus", "exponent", "private_exponent", "input"),
    "export": ("modulus", "exponent", "pem"),
}

pubvals = argparse.ArgumentParser(add_help=False)
pubvals.add_argument("--modulus", "-m", type=help_dict["modulus"].format, help=help_dict["modulus"].description)
pubvals.add_argument("--exponent", "-e", type=help_dict["exponent"].format, help=help_dict["exponent"].description)
privval = argparse.ArgumentParser(add_help=False)
privval.add_argument("--private-exponent",
                     "-d",
                     type=help_dict["private_exponent"].format,
                     help=help_dict["private_exponent"].description)
payloads = argparse.ArgumentParser(add_help=False)
payloads.add_argument("--input", "-i", type=help_dict["input"].format, help=help_dict["input"].description)
payloads.add_argument("--output", "-o", type=help_dict["output"].format, help=help_dict["output"].description)
payloads.add_argument("--block-size",
                      "-b",
                      type=help_dict["block_size"].format,
                      help=help_dict["block_size"].description)
corep = argparse.ArgumentParser(prog="rsablock")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {rsablock.__version__}")
corep.add_argument("--non-interactive", "-n", action="store_true", help="Enable non-interactive mode")
corep.add_argument("--advanced", "-a", action="store_true", help="Enable advanced mode, for interactive mode")
corep.add_argument("--verbose", "-V", action="store_true", help="Enable debug logging")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands")

keygen = commands.add_parser("keygen", help=help_dict["keygen"].description)
keygen.add_argument("--directory", "-D", type=help_dict["directory"].format, help=help_dict["directory"].description)
keygen.add_argument("--keysize", "-k", type=help_dict["keysize"].format, help=help_dict["keysize"].description)
keygen.add_argument("--overwrite", "-o", action="store_const", const="Y", help=help_dict["overwrite"].description)

encrypt = commands.add_parser("encrypt", parents=[pubvals, payloads], help=help_dict["encrypt"].description)
decrypt = commands.add_parser("decrypt", parents=[pubvals, privval, payloads], help=help_dict["decrypt"].description)
export = commands.add_parser("export", parents=[pubvals], help=help_dict["export"].description)
export.add_argument("--pem", "-p", type=help_dict["pem"].format, help=help_dict["pem"].description)


def checkmodes(arg: str, mode: tuple[bool, bool]):
    helper_data = help_dict[arg]
    if (mode[0] or (helper_data.advanced and not mode[1])) and helper_data.default is not None:
        return helper_data.default
    if mode[0]:
        raise IOError(f"Argument {arg} is missing and non-interactive mode is active.")
    return helper_data


def choice_handler(arg: str, mode: tuple[bool, bool], prntr: typing.Callable = print):
    helper_data = checkmodes(arg, mode)
    if not isinstance(helper_data, HelpData):
        return helper_data
    prntr(f"Please specify the {arg}!")
    prntr("Description: " + helper_data.description)
    choices = helper_data.choices
    vald = set(choices)
    for choice in choices:
        defstring = " (Default)" if choice == helper_data.default else ""
        if help_dict.get(choice, None):
            prntr(f"{choice} - {help_dict[choice].description}" + defstring)
        else:
            prntr(f"{choice}" + defstring)
    if helper_data.default is not None:
        prntr("To accept default just click enter. Otherwise specify value.")
    while True:
        ch = input(f"{arg}: ")
        if ch in vald:
            return ch
        if not ch and helper_data.default is not None:
            return helper_data.default
        prntr("Please select an option from the list.")


def input_handler(arg: str, mode: tuple[bool, bool], prntr: typing.Callable = print):
    helper_data = checkmodes(arg, mode)
    if not isinstance(helper_data, HelpData):
        return helper_data
    prntr(f"Please specify the {arg}!")
    prntr("Description: " + helper_data.description)
    if helper_data.default is not None:
        prntr(f"Default value: {helper_data.default}")
        prntr("To accept default just click enter. Otherwise specify value.")
    cls = helper_data.format
    while True:
        ch = input(f"{arg}: ")
        if not ch and helper_data.default is not None:
            return helper_data.default
        if ch == "":
            prntr("Please provide a value.")
            continue
        try:
            return cls(ch)
        except ValueError:
            prntr(f"We could not convert your value to {cls.__name__}.")


def derive_output(source: pathlib.Path, subcommand: str) -> pathlib.Path:
    """Output file name next to `source`, `<stem>_encrypted.txt` or `<stem>_decrypted.txt`."""
    if subcommand == "encrypt":
        return source.with_name(f"{source.stem}_encrypted.txt")
    return source.with_name(f"{source.stem.removesuffix('_encrypted')}_decrypted.txt")


def run(args: argparse.Namespace, pstatus: tuple[bool, bool], pspr: typing.Callable) -> None:
    """Executes the fully specified subcommand."""
    match args.subcommand:
        case "keygen":
            targets = [args.directory / name for name in (MOD_FILE, PUB_FILE, PRIV_FILE)]
            if any(target.exists() for target in targets):
                rs = getattr(args, "overwrite", None)
                if rs is None:
                    rs = choice_handler("overwrite", pstatus, pspr)
                if rs == "N":
                    print("Destination key value files already exist!")
                    return
            args.directory.mkdir(parents=True, exist_ok=True)
            pspr("Searching for primes p and q...")
            rpk = rsablock.RSAPrivKey.generate(args.keysize)
            rpk.export(*targets)
            pspr(f"\nKey generated! Modulus of {rpk.mod.bit_length()} bits.")
        case "encrypt":
            rpu = rsablock.load_key(args.modulus, args.exponent)
            output = getattr(args, "output", None) or derive_output(args.input, "encrypt")
            blocks = codec.encrypt_file(args.input, output, rpu, getattr(args, "block_size", None))
            pspr(f"{output} created successfully, {blocks} blocks.")
        case "decrypt":
            rpk = rsablock.load_key(args.modulus, args.exponent, args.private_exponent)
            output = getattr(args, "output", None) or derive_output(args.input, "decrypt")
            size = codec.decrypt_file(args.input, output, rpk, getattr(args, "block_size", None))
            pspr(f"{output} created successfully, {size} bytes.")
        case "export":
            rpu = rsablock.load_key(args.modulus, args.exponent)
            rpu.export_pem(args.pem)
            pspr(f"Public key exported to {args.pem}.")


def main(argv: list[str] | None = None):
    """Core Hybrid CLI/ICLI (Command Line Interface/Interactive Command Lice Interface)"""
    args = corep.parse_args(argv)
    pstatus = (args.non_interactive, args.advanced)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    def pspr(text: str):
        """Print only if not in non-interactive mode."""
        if not pstatus[0]:
            print(text)

    pspr("Welcome to RSA Block!\n")
    if not args.subcommand:
        args.subcommand = choice_handler("subcommand", pstatus)
    for reqs in needs[args.subcommand]:
        if getattr(args, reqs, None) is None:
            if help_dict[reqs].choices is not None:
                res = choice_handler(reqs, pstatus)
            else:
                res = input_handler(reqs, pstatus)
            setattr(args, reqs, res)
        else:
            pspr(f"{reqs}: {getattr(args, reqs)}")
    pspr("\nInput Complete! Executing...")
    try:
        run(args, pstatus, pspr)
    except (ValueError, RuntimeError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    pspr("Thank you for using RSA Block!")
    pspr("Goodbye!")


if __name__ == "__main__":
    main()
