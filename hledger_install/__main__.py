from hledger_install.cli.app import main

main()
