# tests/conftest.py
"""
Shared Rust sources and fixtures for the anchorscan test-suite.

Snippets are plain module constants so test modules can import them
directly (``from tests.conftest import CLEAN_PROGRAM``).
"""

from pathlib import Path
from typing import Dict

import pytest

from anchorscan.registry import build_default_registry


# ═════════════════════════════════════════════════════════════════════════
#  Programs
# ═════════════════════════════════════════════════════════════════════════

CLEAN_PROGRAM = '''\
use anchor_lang::prelude::*;

declare_id!("Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS");

#[program]
pub mod vault {
    use super::*;

    pub fn deposit(ctx: Context<Deposit>, amount: u64) -> Result<()> {
        let vault = &mut ctx.accounts.vault;
        vault.balance = vault.balance.checked_add(amount).unwrap();
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Deposit<'info> {
    #[account(mut)]
    pub vault: Account<'info, Vault>,
    #[account(mut)]
    pub user: Signer<'info>,
    pub system_program: Program<'info, System>,
}

#[account]
#[derive(InitSpace)]
pub struct Vault {
    pub balance: u64,
}
'''

# vault is a raw account without #[account(mut)] and gets written to
RAW_VAULT_WRITE = '''\
use anchor_lang::prelude::*;

#[program]
pub mod vault {
    use super::*;

    pub fn update(ctx: Context<Update>) -> Result<()> {
        ctx.accounts.vault.balance = 100;
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Update<'info> {
    /// CHECK: only read by the program
    pub vault: AccountInfo<'info>,
    pub payer: Signer<'info>,
}
'''

RAW_VAULT_WRITE_MUT = RAW_VAULT_WRITE.replace(
    "    /// CHECK: only read by the program\n",
    "    /// CHECK: only read by the program\n    #[account(mut)]\n",
)

NO_SIGNER = '''\
use anchor_lang::prelude::*;

#[program]
pub mod registry {
    use super::*;

    pub fn register(ctx: Context<Register>) -> Result<()> {
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Register<'info> {
    #[account(mut)]
    pub config: Account<'info, Config>,
    pub system_program: Program<'info, System>,
}
'''

NESTED_SIGNER = '''\
use anchor_lang::prelude::*;

pub fn withdraw(ctx: Context<Withdraw>) -> Result<()> {
    Ok(())
}

#[derive(Accounts)]
pub struct Auth<'info> {
    pub authority: Signer<'info>,
}

#[derive(Accounts)]
pub struct Withdraw<'info> {
    pub auth: Auth<'info>,
    #[account(mut)]
    pub vault: Account<'info, Vault>,
}
'''

CYCLIC_CONTEXTS = '''\
use anchor_lang::prelude::*;

pub fn ping(ctx: Context<Ping>) -> Result<()> {
    Ok(())
}

pub fn pong(ctx: Context<Pong>) -> Result<()> {
    Ok(())
}

#[derive(Accounts)]
pub struct Ping<'info> {
    pub pong: Pong<'info>,
}

#[derive(Accounts)]
pub struct Pong<'info> {
    pub ping: Ping<'info>,
}
'''

ALIASED_INCREMENT = '''\
use anchor_lang::prelude::*;

#[program]
pub mod counter {
    use super::*;

    pub fn increment(ctx: Context<Increment>) -> Result<()> {
        let counter = &mut ctx.accounts.counter;
        counter.value += 1;
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Increment<'info> {
    pub counter: Account<'info, Counter>,
    pub user: Signer<'info>,
}

#[account]
pub struct Counter {
    pub value: u64,
}
'''

LAMPORTS_BORROW = '''\
use anchor_lang::prelude::*;

#[program]
pub mod drain {
    use super::*;

    pub fn drain(ctx: Context<Drain>) -> Result<()> {
        **ctx.accounts.vault.try_borrow_mut_lamports()? = 0;
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Drain<'info> {
    /// CHECK: drained by the program
    pub vault: AccountInfo<'info>,
    pub authority: Signer<'info>,
}
'''

SET_LAMPORTS = '''\
use anchor_lang::prelude::*;

#[program]
pub mod reset {
    use super::*;

    pub fn reset(ctx: Context<Reset>) -> Result<()> {
        ctx.accounts.readonly_account.set_lamports(0);
        ctx.accounts.writable_account.set_lamports(0);
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Reset<'info> {
    pub readonly_account: SystemAccount<'info>,
    #[account(mut)]
    pub writable_account: SystemAccount<'info>,
    pub authority: Signer<'info>,
}
'''

INSTRUCTION_SWAPPED = '''\
use anchor_lang::prelude::*;

#[program]
pub mod demo {
    use super::*;

    pub fn configure(ctx: Context<Configure>, y: u8, x: bool) -> Result<()> {
        Ok(())
    }
}

#[derive(Accounts)]
#[instruction(x: u8, y: bool)]
pub struct Configure<'info> {
    #[account(mut, seeds = [b"cfg", &[x]], bump)]
    pub config: Account<'info, Config>,
    pub authority: Signer<'info>,
}
'''

SYSVARS = '''\
use anchor_lang::prelude::*;

#[derive(Accounts)]
pub struct MyContext<'info> {
    pub clock: Sysvar<'info, Clock>,
    pub rent: Sysvar<'info, Rent>,
    pub epoch_schedule: Sysvar<'info, EpochSchedule>,
    pub slot_hashes: Sysvar<'info, SlotHashes>,
    pub stake_history: Sysvar<'info, StakeHistory>,
    pub instructions: Sysvar<'info, Instructions>,
    #[account(mut)]
    pub user: Account<'info, User>,
}
'''

UNPARSEABLE = '''\
use anchor_lang::prelude::*;

pub fn broken(ctx: Context<Broken> {
    let x = ;
}
'''


def anchor_fn(body: str, params: str = "a: u64, b: u64") -> str:
    """Wrap statements in a function of an Anchor source file."""
    indented = "\n".join("    " + line for line in body.strip().splitlines())
    return (
        "use anchor_lang::prelude::*;\n\n"
        f"pub fn compute({params}) -> u64 {{\n{indented}\n}}\n"
    )


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create *files* (relative path → text) under *root*."""
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


# ═════════════════════════════════════════════════════════════════════════
#  Fixtures
# ═════════════════════════════════════════════════════════════════════════

@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def anchor_workspace(tmp_path):
    """A two-program Anchor workspace on disk."""
    return write_tree(tmp_path, {
        "Anchor.toml": "[programs.localnet]\nvault = \"Fg6PaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS\"\n",
        "Cargo.toml": "[workspace]\nmembers = [\"programs/*\"]\n",
        "programs/vault/Cargo.toml": "[package]\nname = \"vault\"\n",
        "programs/vault/src/lib.rs": CLEAN_PROGRAM,
        "programs/registry/Cargo.toml": "[package]\nname = \"registry\"\n",
        "programs/registry/src/lib.rs": NO_SIGNER,
        "programs/registry/target/debug/build.rs": NO_SIGNER,
        "tests/registry.rs": NO_SIGNER,
    })
