import logging
import asyncio
import os
import click
from dataclasses import dataclass
from ledgersync.config import SyncConfig, DEFAULT_CONFIG_FILE, load_config, save_config
from ledgersync.errors import LedgerSyncError
from ledgersync.pda import *
from ledgersync.sync import SocialSync

# Main CLI to inspect the synchronized view of the social program.
# It utilizes the 'click' library.

@dataclass
class CliContext:
    verbose:bool
    work_dir:str
    config_file_path:str
    config:SyncConfig

    def make_sync(self) -> SocialSync:
        return SocialSync.from_config(self.config)

    def enforce_actor(self) -> Identity:
        if self.config.actor is None:
            raise click.ClickException("No actor configured. Use '--actor' or set 'actor' in the [session] table of the config file.")
        return PublicKey(self.config.actor)

def _key_arg(value:str, name:str) -> PublicKey:
    if not is_key_str(value):
        raise click.BadParameter(f"'{value}' is not a base58 encoded key.", param_hint=name)
    return PublicKey(value)

def _run(cli_ctx:CliContext, coro_factory):
    async def ainit():
        sync = cli_ctx.make_sync()
        try:
            await coro_factory(sync)
        finally:
            await sync.client.close()
    try:
        asyncio.run(ainit())
    except LedgerSyncError as e:
        raise click.ClickException(str(e)) from e

@click.group()
@click.pass_context
@click.option("--work-dir", "-d", help="Work directory. By default, uses the current directory. The config file is looked up here.")
@click.option("--rpc-url", help="JSON-RPC endpoint of the ledger. Overrides the config file.")
@click.option("--program-id", help="Program id (base58). Overrides the config file.")
@click.option("--actor", help="Identity (base58) to read as. Overrides the config file.")
@click.option("--verbose", "-v", is_flag=True, help="Will print verbose messages.")
def cli(ctx:click.Context, verbose:bool, work_dir:str|None, rpc_url:str|None, program_id:str|None, actor:str|None):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    if(work_dir is None):
        work_dir = os.getcwd()
    if(not os.path.exists(work_dir)):
        raise click.ClickException(f"Work directory '{work_dir}' (absolute: '{os.path.abspath(work_dir)}') does not exist.")
    config_file_path = os.path.join(work_dir, DEFAULT_CONFIG_FILE)

    if(verbose):
        print(" work dir: " + work_dir)
        print(" config file: " + config_file_path)

    try:
        config = load_config(config_file_path) if os.path.exists(config_file_path) else SyncConfig()
        config = config.with_overrides(rpc_url=rpc_url, program_id=program_id, actor=actor)
    except (LedgerSyncError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    ctx.obj = CliContext(
        verbose=verbose,
        work_dir=work_dir,
        config_file_path=config_file_path,
        config=config)

#===========================================================
# 'init' command
#===========================================================
@cli.command()
@click.pass_context
def init(ctx:click.Context):
    print("-> Initializing config")
    cli_ctx:CliContext = ctx.obj
    if(not os.path.exists(cli_ctx.config_file_path)):
        save_config(cli_ctx.config_file_path, cli_ctx.config)
        print("Config file initialized: " + cli_ctx.config_file_path)
    else:
        print("Config file already exists: " + cli_ctx.config_file_path)

#===========================================================
# 'derive' commands
# Pure address derivation, no network access.
#===========================================================
@cli.group()
def derive():
    pass

@derive.command("profile")
@click.pass_context
@click.argument("authority")
def derive_profile(ctx:click.Context, authority:str):
    cli_ctx:CliContext = ctx.obj
    print(derive_profile_address(cli_ctx.config.program_id, _key_arg(authority, "authority")))

@derive.command("post")
@click.pass_context
@click.argument("creator")
@click.argument("media_uri")
def derive_post(ctx:click.Context, creator:str, media_uri:str):
    cli_ctx:CliContext = ctx.obj
    program_id = cli_ctx.config.program_id
    creator_key = _key_arg(creator, "creator")
    print(derive_post_address(program_id, creator_key, media_uri, derive_profile_address(program_id, creator_key)))

@derive.command("comment")
@click.pass_context
@click.argument("post")
@click.argument("commenter")
@click.argument("content")
def derive_comment(ctx:click.Context, post:str, commenter:str, content:str):
    cli_ctx:CliContext = ctx.obj
    print(derive_comment_address(cli_ctx.config.program_id, _key_arg(post, "post"), _key_arg(commenter, "commenter"), content))

@derive.command("follow")
@click.pass_context
@click.argument("follower")
@click.argument("following")
def derive_follow(ctx:click.Context, follower:str, following:str):
    cli_ctx:CliContext = ctx.obj
    print(derive_follow_address(cli_ctx.config.program_id, _key_arg(follower, "follower"), _key_arg(following, "following")))

#===========================================================
# read commands
#===========================================================
@cli.command()
@click.pass_context
@click.argument("authority", required=False)
def profile(ctx:click.Context, authority:str|None):
    cli_ctx:CliContext = ctx.obj
    authority_key = _key_arg(authority, "authority") if authority else cli_ctx.enforce_actor()

    async def show(sync:SocialSync):
        user_profile = await sync.fetch_profile_of(authority_key)
        if user_profile is None:
            print(f"No profile for {authority_key}")
            return
        print(f"{'handle':<12} {user_profile.handle}")
        print(f"{'bio':<12} {user_profile.bio}")
        print(f"{'followers':<12} {user_profile.follower_count}")
        print(f"{'following':<12} {user_profile.following_count}")
        print(f"{'address':<12} {user_profile.address}")
    _run(cli_ctx, show)

@cli.command()
@click.pass_context
@click.option("--mine", is_flag=True, help="Only the actor's own posts.")
def posts(ctx:click.Context, mine:bool):
    cli_ctx:CliContext = ctx.obj
    cli_ctx.enforce_actor()

    async def show(sync:SocialSync):
        if mine:
            rows = [(p.created_at, "", p.content, p.address) for p in await sync.fetch_user_posts()]
        else:
            rows = [(v.post.created_at, v.creator_handle, v.post.content, v.address) for v in await sync.fetch_all_posts()]
        print(f"{'created_at':<12} {'handle':<20} {'address':<45} content")
        for created_at, handle, content, address in rows:
            print(f"{created_at:<12} {handle:<20} {str(address):<45} {content}")
    _run(cli_ctx, show)

@cli.command()
@click.pass_context
@click.argument("post")
def comments(ctx:click.Context, post:str):
    cli_ctx:CliContext = ctx.obj
    cli_ctx.enforce_actor()
    post_key = _key_arg(post, "post")

    async def show(sync:SocialSync):
        print(f"{'created_at':<12} {'by':<45} content")
        for comment in await sync.fetch_comments(post_key):
            print(f"{comment.created_at:<12} {str(comment.comment_by):<45} {comment.content}")
    _run(cli_ctx, show)

@cli.command()
@click.pass_context
def profiles(ctx:click.Context):
    cli_ctx:CliContext = ctx.obj
    cli_ctx.enforce_actor()

    async def show(sync:SocialSync):
        print(f"{'handle':<20} {'following':<10} authority")
        for view in await sync.fetch_all_profiles():
            print(f"{view.profile.handle:<20} {str(view.is_following):<10} {view.authority}")
    _run(cli_ctx, show)

if __name__ == '__main__':
    cli(None)
