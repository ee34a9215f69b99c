# Offline command line tools for HypeGate
import json
import time
from decimal import Decimal, InvalidOperation

import click

from core.config.settings import Settings
from core.logging import configure_logging
from core.signing.address import normalize_address
from core.signing.keys import SigningKey
from core.signing.signer import sign_action
from core.trading.assets import AssetDirectory
from core.trading.models import LimitOrderType, PlaceOrder, Tif
from core.utils.exceptions import HypeGateException
from services.exchange_gateway.dispatcher import build_envelope


class DecimalType(click.ParamType):
    name = "decimal"

    def convert(self, value, param, ctx):
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value))
        except InvalidOperation:
            self.fail(f"{value!r} is not a decimal number", param, ctx)


DECIMAL = DecimalType()


@click.group()
@click.pass_context
def cli(ctx):
    """HypeGate CLI"""
    settings = Settings()
    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.argument("value")
@click.option("--lenient", is_flag=True, help="Pad or truncate instead of rejecting odd lengths")
def address(value, lenient):
    """Normalize a hex address"""
    try:
        click.echo(normalize_address(value, strict=not lenient).to_hex())
    except HypeGateException as e:
        raise click.ClickException(e.message)


@cli.command("derive-address")
@click.option("--key", envvar="HYPEGATE_PRIVATE_KEY", required=True, help="Hex private key")
def derive_address(key):
    """Print the address derived from a private key"""
    try:
        click.echo(SigningKey(key).address.to_hex())
    except HypeGateException as e:
        raise click.ClickException(e.message)


@cli.command("sign-order")
@click.option("--key", envvar="HYPEGATE_PRIVATE_KEY", required=True, help="Hex private key")
@click.option("--assets", "assets_file", type=click.File("r"), required=True,
              help="JSON file mapping symbol -> {index, decimals[, price_decimals]}")
@click.option("--coin", required=True)
@click.option("--side", type=click.Choice(["buy", "sell"]), required=True)
@click.option("--size", type=DECIMAL, required=True)
@click.option("--price", type=DECIMAL, required=True)
@click.option("--tif", type=click.Choice([t.value for t in Tif]), default=Tif.GTC.value)
@click.option("--reduce-only", is_flag=True)
@click.option("--cloid", default=None, help="0x + 32 hex chars")
@click.option("--nonce", type=int, default=None, help="Defaults to the current time in ms")
@click.option("--vault", default=None, help="Vault or sub-account address")
@click.option("--expires-after", type=int, default=None)
@click.option("--testnet", is_flag=True, help="Sign for testnet regardless of settings")
@click.pass_obj
def sign_order(settings, key, assets_file, coin, side, size, price, tif, reduce_only, cloid,
               nonce, vault, expires_after, testnet):
    """Sign a limit order and print the request envelope (nothing is sent)"""
    try:
        directory = AssetDirectory(json.load(assets_file))
        order = PlaceOrder(
            coin=coin,
            is_buy=side == "buy",
            size=size,
            limit_price=price,
            order_type=LimitOrderType(tif=Tif(tif)),
            reduce_only=reduce_only,
            cloid=cloid,
        )
        request = sign_action(
            order,
            nonce if nonce is not None else int(time.time() * 1000),
            SigningKey(key),
            directory,
            vault_address=vault or settings.signing.default_vault_address,
            expires_after=expires_after,
            is_mainnet=settings.exchange.is_mainnet and not testnet,
            strict_addresses=settings.signing.strict_addresses,
        )
    except HypeGateException as e:
        raise click.ClickException(e.message)
    except (KeyError, ValueError) as e:
        raise click.ClickException(f"Invalid asset directory: {e}")

    click.echo(json.dumps(build_envelope(request), indent=2))


if __name__ == "__main__":
    cli()
