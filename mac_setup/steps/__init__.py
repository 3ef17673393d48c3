from .step_10_xcode_clt import XcodeCLTStep
from .step_20_homebrew import HomebrewStep
from .step_22_brew_update import BrewUpdateStep
from .step_30_bundle_bootstrap import BundleBootstrapStep
from .step_32_bundle_full import BundleFullStep
from .step_40_gnu_tools import GnuToolsStep
from .step_42_zshrc_sourcing import ZshrcSourcingStep
from .step_50_oh_my_zsh import OhMyZshStep
from .step_60_mise_activation import MiseActivationStep
from .step_62_mise_install import MiseInstallStep
from .step_70_dotfiles import DotfilesStep
from .step_75_git_identity import GitIdentityStep
from .step_76_git_signing import GitSigningStep
from .step_80_macos_defaults import MacosDefaultsStep
from .step_85_aws_saml import AwsSamlStep
from .step_90_vscode_extensions import VSCodeExtensionsStep

__all__ = [
    "XcodeCLTStep",
    "HomebrewStep",
    "BrewUpdateStep",
    "BundleBootstrapStep",
    "BundleFullStep",
    "GnuToolsStep",
    "ZshrcSourcingStep",
    "OhMyZshStep",
    "MiseActivationStep",
    "MiseInstallStep",
    "DotfilesStep",
    "GitIdentityStep",
    "GitSigningStep",
    "MacosDefaultsStep",
    "AwsSamlStep",
    "VSCodeExtensionsStep",
]
