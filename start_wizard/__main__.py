from start_wizard.cli import main

main()
